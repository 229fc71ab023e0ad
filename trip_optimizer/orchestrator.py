# trip_optimizer/orchestrator.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import logging

from trip_optimizer import config
from trip_optimizer.agents.assignment_builder import build_assignments, count_data_gaps
from trip_optimizer.agents.constraint_resolver import resolve_constraints
from trip_optimizer.agents.day_classifier import DayClassifier, classify_day
from trip_optimizer.agents.strategies import STRATEGIES, StrategyContext, StrategyOutcome
from trip_optimizer.agents.trip_normalizer import normalize_trip
from trip_optimizer.errors import DataGapWarning, warning_note
from trip_optimizer.schemas import (
    ActivityRatingSummary,
    Assignment,
    Constraint,
    OptimizationAlternative,
    OptimizationOptions,
    OptimizationResult,
    Strategy,
    StrategyWeights,
    Trip,
    TripDay,
)
from trip_optimizer.scoring import build_benefits, confidence, improvement_score, rank_score
from trip_optimizer.tools.crowd_gateway import CrowdForecast, CrowdGateway, HttpCrowdGateway, fetch_forecast

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False

STRATEGY_LABELS: Dict[Strategy, str] = {
    Strategy.CROWD_MINIMIZATION: "Crowd Minimization",
    Strategy.PRIORITY_COVERAGE: "Priority Coverage",
    Strategy.GROUP_CONSENSUS: "Group Consensus",
    Strategy.ENERGY_PACING: "Energy Pacing",
}


# ---------- entry points ----------
async def optimize(
    trip: Trip,
    ratings: Sequence[ActivityRatingSummary] | None = None,
    options: OptimizationOptions | None = None,
    *,
    gateway: CrowdGateway | None = None,
    classifier: DayClassifier = classify_day,
) -> OptimizationResult:
    """Fetch crowd forecasts for the trip and produce ranked alternatives.

    The forecast lookups are the only awaited work; everything after them is
    the synchronous core in :func:`optimize_with_forecast`.
    """
    options = options or OptimizationOptions()
    ratings = list(ratings or [])
    canonical, notes = normalize_trip(trip, classifier)
    destinations = known_destinations(canonical.days, ratings, options.candidate_destinations)
    dates = [day.date for day in canonical.days]

    if gateway is None and not config.CROWD_API_BASE_URL:
        logger.info("No crowd gateway configured; every day uses the neutral crowd score")
        forecast = CrowdForecast()
    else:
        forecast = await fetch_forecast(gateway or HttpCrowdGateway(), destinations, dates)

    return _optimize_canonical(canonical, ratings, options, forecast, notes)


def optimize_with_forecast(
    trip: Trip,
    ratings: Sequence[ActivityRatingSummary] | None,
    options: OptimizationOptions | None,
    forecast: CrowdForecast,
    *,
    classifier: DayClassifier = classify_day,
) -> OptimizationResult:
    """Synchronous optimization against an already collected forecast table."""
    canonical, notes = normalize_trip(trip, classifier)
    return _optimize_canonical(canonical, list(ratings or []), options or OptimizationOptions(), forecast, notes)


def apply_alternative(days: Sequence[TripDay], alternative: OptimizationAlternative) -> List[TripDay]:
    """Return the day list with the alternative's destinations applied.

    Only ``destination_id`` can change; days the alternative does not mention,
    or whose destination is unchanged, are returned as-is.
    """
    chosen = alternative.destinations_by_day()
    updated: List[TripDay] = []
    for day in days:
        if day.id in chosen and chosen[day.id] != day.destination_id:
            updated.append(day.model_copy(update={"destination_id": chosen[day.id]}))
        else:
            updated.append(day)
    return updated


def known_destinations(
    days: Iterable[TripDay],
    ratings: Iterable[ActivityRatingSummary],
    candidates: Iterable[str] = (),
) -> List[str]:
    found = {day.destination_id for day in days if day.destination_id}
    found.update(r.destination_id for r in ratings if r.destination_id)
    found.update(c for c in candidates if c)
    return sorted(found)


# ---------- core ----------
def _optimize_canonical(
    canonical: Trip,
    ratings: List[ActivityRatingSummary],
    options: OptimizationOptions,
    forecast: CrowdForecast,
    notes: List[str],
) -> OptimizationResult:
    days = canonical.days
    original = build_assignments(days, forecast)
    constraints = resolve_constraints(days, options.constraints)
    context = StrategyContext(
        destinations=known_destinations(days, ratings, options.candidate_destinations),
        ratings=ratings,
        intensity=dict(config.DESTINATION_INTENSITY),
    )

    gaps = count_data_gaps(original)
    if gaps:
        message = (
            f"{gaps} of {len(original)} day(s) had no crowd forecast; "
            f"used the neutral crowd score {config.NEUTRAL_CROWD_SCORE:g}"
        )
        logger.info("%s: %s", DataGapWarning.__name__, message)
        _extend_unique(notes, [warning_note(DataGapWarning, message)])

    selected = [options.strategy] if options.strategy else list(Strategy)
    logger.info(
        "Optimizing trip %s: %d day(s), %d flexible, %d destination(s), strategies %s",
        canonical.id,
        len(days),
        sum(1 for c in constraints if c.can_reassign),
        len(context.destinations),
        ", ".join(s.value for s in selected),
    )

    outcomes: Dict[Strategy, StrategyOutcome] = {}
    for strategy in selected:
        outcomes[strategy] = STRATEGIES[strategy](list(original), constraints, forecast, context)

    return assemble_result(
        original,
        outcomes,
        constraints,
        context,
        weights=options.weights,
        notes=notes,
    )


def assemble_result(
    original: List[Assignment],
    outcomes: Dict[Strategy, StrategyOutcome],
    constraints: List[Constraint],
    context: StrategyContext,
    *,
    weights: Optional[StrategyWeights] = None,
    notes: Optional[List[str]] = None,
) -> OptimizationResult:
    """Wrap strategy outcomes into ranked alternatives with their benefits."""
    run_notes: List[str] = list(notes or [])
    alternatives: List[OptimizationAlternative] = []
    for strategy, outcome in outcomes.items():
        improvement = improvement_score(original, outcome.assignments)
        benefits = build_benefits(original, outcome.assignments, context.ratings, context.intensity)
        alternatives.append(
            OptimizationAlternative(
                id=f"alt-{strategy.value}",
                strategy=strategy,
                assignments=outcome.assignments,
                benefits=benefits,
                improvement_score=improvement,
                score=rank_score(improvement, benefits, weights),
                reasoning=list(outcome.reasoning),
            )
        )
        _extend_unique(run_notes, outcome.notes)

    # sorted() is stable, so equal scores keep strategy order
    alternatives = sorted(alternatives, key=lambda alt: alt.score, reverse=True)

    fixed = sum(1 for c in constraints if not c.can_reassign)
    reasoning = [
        f"Evaluated {len(original)} day(s): {len(original) - fixed} flexible, {fixed} fixed",
    ]
    if alternatives:
        best = alternatives[0]
        reasoning.append(
            f"Recommended {STRATEGY_LABELS[best.strategy]} (score {best.score:g}, "
            f"{best.benefits.crowd_reduction_pct:g}% less crowd exposure)"
        )
        reasoning.extend(best.reasoning)

    result = OptimizationResult(
        original_assignment=original,
        alternatives=alternatives,
        confidence=confidence(original, constraints),
        reasoning=reasoning,
        notes=run_notes,
    )
    logger.info(
        "Generated %d alternative(s); best score %.2f, confidence %d%%",
        len(alternatives),
        alternatives[0].score if alternatives else 0.0,
        result.confidence,
    )
    return result


def _extend_unique(target: List[str], notes: Iterable[str]) -> None:
    for note in notes:
        if note and note not in target:
            target.append(note)
