"""The four re-assignment strategies.

Every strategy has the same shape: it receives the run's assignments, the
per-day constraints, the crowd forecast and a :class:`StrategyContext`, and
returns new assignments plus reasoning. Fixed days are passed through
untouched and the output keeps the input's chronological order.

Priority coverage, group consensus and energy pacing are all "rank the
flexible days, rank the destinations, pair them by position", so they share
:func:`ranked_pairing`. Crowd minimization balances diversity against crowds
one day at a time and has its own greedy loop.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from trip_optimizer import config
from trip_optimizer.agents.assignment_builder import make_assignment
from trip_optimizer.agents.constraint_resolver import partition
from trip_optimizer.errors import PartialAssignmentWarning, warning_note
from trip_optimizer.schemas import ActivityRatingSummary, Assignment, Constraint, Strategy
from trip_optimizer.tools.crowd_gateway import CrowdForecast

# Lower consensus means more disagreement, which earns an easier (quieter) day.
CONSENSUS_CONFLICT_WEIGHTS: Dict[str, int] = {
    "conflict": 3,
    "low": 2,
    "medium": 1,
    "high": 0,
}


@dataclass
class StrategyContext:
    destinations: List[str]
    ratings: List[ActivityRatingSummary] = field(default_factory=list)
    intensity: Mapping[str, int] = field(default_factory=lambda: dict(config.DESTINATION_INTENSITY))


@dataclass
class StrategyOutcome:
    assignments: List[Assignment]
    reasoning: List[str]
    notes: List[str] = field(default_factory=list)


StrategyFn = Callable[[List[Assignment], List[Constraint], CrowdForecast, StrategyContext], StrategyOutcome]


# ---------- crowd minimization ----------
def optimize_for_crowds(
    assignments: List[Assignment],
    constraints: List[Constraint],
    forecast: CrowdForecast,
    context: StrategyContext,
) -> StrategyOutcome:
    fixed, flexible = partition(assignments, constraints)
    # Only reachable when callers pass days sharing a date; normalize_trip
    # leaves one day per date.
    fixed_pairs: Set[Tuple[Optional[str], str]] = {(a.destination_id, a.date) for a in fixed}
    usage: Dict[str, int] = {}
    chosen: Dict[str, Assignment] = {}
    notes: List[str] = []

    for current in sorted(flexible, key=lambda a: a.date):
        candidates: List[Tuple[int, float, str]] = []
        for destination_id in context.destinations:
            if (destination_id, current.date) in fixed_pairs:
                continue
            crowd_score, _ = forecast.score_for(destination_id, current.date)
            candidates.append((usage.get(destination_id, 0), crowd_score, destination_id))

        if not candidates:
            continue
        # diversity first, then crowds, then id for a stable answer
        candidates.sort()
        _, _, best = candidates[0]
        usage[best] = usage.get(best, 0) + 1
        chosen[current.day_id] = make_assignment(current.day_id, best, current.date, forecast)

    unfilled = len(flexible) - len(chosen)
    if unfilled:
        notes.append(
            warning_note(
                PartialAssignmentWarning,
                f"crowd minimization had no candidate destination for {unfilled} day(s); kept their current plans",
            )
        )

    result = [chosen.get(a.day_id, a) for a in assignments]
    changed = _count_changes(assignments, result)
    reasoning = [
        f"Analyzed {len(flexible)} flexible day(s) against {len(context.destinations)} destination(s) for crowd exposure",
        f"Kept {len(fixed)} fixed day(s) unchanged",
        "Spread visits across different destinations first, then picked the lowest predicted crowd level each day",
        f"Changed the destination on {changed} day(s)",
    ]
    return StrategyOutcome(assignments=result, reasoning=reasoning, notes=notes)


# ---------- shared rank-and-pair primitive ----------
def ranked_pairing(
    assignments: List[Assignment],
    constraints: List[Constraint],
    forecast: CrowdForecast,
    *,
    destinations: Sequence[str],
    day_key: Callable[[Assignment], Any],
    destination_key: Callable[[str], Any],
) -> Tuple[List[Assignment], int]:
    """Pair the i-th ranked flexible day with the i-th ranked destination.

    Both rankings sort ascending by their key. Days beyond the end of the
    destination ranking keep what they had. Returns the new assignment list
    (in input order) and the number of flexible days left unpaired.
    """
    _, flexible = partition(assignments, constraints)
    ranked_days = sorted(sorted(flexible, key=lambda a: a.date), key=day_key)
    ranked_destinations = sorted(destinations, key=destination_key)

    paired: Dict[str, Assignment] = {
        day.day_id: make_assignment(day.day_id, destination_id, day.date, forecast)
        for day, destination_id in zip(ranked_days, ranked_destinations)
    }
    result = [paired.get(a.day_id, a) for a in assignments]
    return result, len(ranked_days) - len(paired)


def _partial_note(strategy: Strategy, unpaired: int, candidate_label: str) -> List[str]:
    if not unpaired:
        return []
    return [
        warning_note(
            PartialAssignmentWarning,
            f"{strategy.value} ran out of {candidate_label}; {unpaired} flexible day(s) keep their current destination",
        )
    ]


# ---------- priority coverage ----------
def priority_scores(ratings: Sequence[ActivityRatingSummary]) -> Dict[str, float]:
    """Per destination: total must-do votes times the mean activity rating."""
    grouped: Dict[str, List[ActivityRatingSummary]] = {}
    for rating in ratings:
        grouped.setdefault(rating.destination_id, []).append(rating)

    scores: Dict[str, float] = {}
    for destination_id, items in grouped.items():
        must_do = sum(r.must_do_count for r in items)
        avg_rating = sum(r.average_rating or 0.0 for r in items) / len(items)
        scores[destination_id] = must_do * avg_rating
    return scores


def optimize_for_priority(
    assignments: List[Assignment],
    constraints: List[Constraint],
    forecast: CrowdForecast,
    context: StrategyContext,
) -> StrategyOutcome:
    scores = priority_scores(context.ratings)
    result, unpaired = ranked_pairing(
        assignments,
        constraints,
        forecast,
        destinations=list(scores),
        day_key=lambda a: a.crowd_score,
        destination_key=lambda d: (-scores[d], d),
    )
    locked = len(assignments) - len(partition(assignments, constraints)[1])
    reasoning = [
        f"Analyzed must-do attractions across {len(scores)} destination(s)",
        "Assigned destinations with the most must-do votes to the lowest-crowd days",
        f"Protected {locked} fixed day assignment(s)",
    ]
    if not scores:
        reasoning.append("No activity ratings were available, so every day keeps its current destination")
    return StrategyOutcome(
        assignments=result,
        reasoning=reasoning,
        notes=_partial_note(Strategy.PRIORITY_COVERAGE, unpaired, "prioritised destinations"),
    )


# ---------- group consensus ----------
def conflict_scores(ratings: Sequence[ActivityRatingSummary]) -> Dict[str, int]:
    scores: Dict[str, int] = {}
    for rating in ratings:
        weight = CONSENSUS_CONFLICT_WEIGHTS.get(rating.consensus_level or "", 0)
        scores[rating.destination_id] = scores.get(rating.destination_id, 0) + weight
    return scores


def optimize_for_consensus(
    assignments: List[Assignment],
    constraints: List[Constraint],
    forecast: CrowdForecast,
    context: StrategyContext,
) -> StrategyOutcome:
    scores = conflict_scores(context.ratings)
    result, unpaired = ranked_pairing(
        assignments,
        constraints,
        forecast,
        destinations=list(scores),
        day_key=lambda a: a.crowd_score,
        destination_key=lambda d: (-scores[d], d),
    )
    reasoning = [
        f"Analyzed group consensus for {len(scores)} destination(s)",
        "Assigned destinations with the most rating conflicts to the lowest-crowd days",
        "Gives the group its easiest days where opinions differ most",
    ]
    return StrategyOutcome(
        assignments=result,
        reasoning=reasoning,
        notes=_partial_note(Strategy.GROUP_CONSENSUS, unpaired, "rated destinations"),
    )


# ---------- energy pacing ----------
def intensity_for(destination_id: Optional[str], table: Mapping[str, int]) -> int:
    if destination_id is None:
        return 0
    return table.get(destination_id, config.DEFAULT_INTENSITY)


def optimize_for_energy(
    assignments: List[Assignment],
    constraints: List[Constraint],
    forecast: CrowdForecast,
    context: StrategyContext,
) -> StrategyOutcome:
    table = context.intensity
    result, unpaired = ranked_pairing(
        assignments,
        constraints,
        forecast,
        destinations=context.destinations,
        day_key=lambda a: a.date,
        destination_key=lambda d: (-intensity_for(d, table), d),
    )
    by_intensity = sorted(context.destinations, key=lambda d: (-intensity_for(d, table), d))
    reasoning = [
        "Scheduled the most physically demanding destinations early in the trip",
        "Left lower-intensity destinations for later days when energy runs lower",
    ]
    if by_intensity:
        reasoning.append(
            f"Most intensive: {by_intensity[0]}; least intensive: {by_intensity[-1]}"
        )
    return StrategyOutcome(
        assignments=result,
        reasoning=reasoning,
        notes=_partial_note(Strategy.ENERGY_PACING, unpaired, "destinations to pace"),
    )


STRATEGIES: Dict[Strategy, StrategyFn] = {
    Strategy.CROWD_MINIMIZATION: optimize_for_crowds,
    Strategy.PRIORITY_COVERAGE: optimize_for_priority,
    Strategy.GROUP_CONSENSUS: optimize_for_consensus,
    Strategy.ENERGY_PACING: optimize_for_energy,
}


def _count_changes(before: List[Assignment], after: List[Assignment]) -> int:
    return sum(1 for old, new in zip(before, after) if old.destination_id != new.destination_id)
