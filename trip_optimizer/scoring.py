"""Scoring, benefit breakdowns and confidence for optimizer alternatives."""
from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from trip_optimizer import config
from trip_optimizer.agents.strategies import intensity_for, priority_scores
from trip_optimizer.schemas import (
    ActivityRatingSummary,
    Assignment,
    Benefits,
    Constraint,
    StrategyWeights,
)


def improvement_score(original: Sequence[Assignment], optimized: Sequence[Assignment]) -> int:
    """Relative change in summed day scores mapped onto 0-100, with 50 meaning "no change"."""
    original_total = sum(a.score for a in original)
    optimized_total = sum(a.score for a in optimized)
    if original_total <= 0:
        return 50 if optimized_total <= 0 else 100
    improvement = (optimized_total - original_total) / original_total * 100
    return int(_clamp(round(improvement + 50), 0, 100))


def crowd_reduction(original: Sequence[Assignment], optimized: Sequence[Assignment]) -> float:
    """Percentage drop in summed crowd scores; never negative."""
    original_crowds = sum(a.crowd_score for a in original)
    optimized_crowds = sum(a.crowd_score for a in optimized)
    if original_crowds <= 0:
        return 0.0
    reduction = (original_crowds - optimized_crowds) / original_crowds * 100
    return max(0.0, round(reduction, 1))


def minutes_saved(original: Sequence[Assignment], optimized: Sequence[Assignment]) -> float:
    delta = sum(a.crowd_score for a in original) - sum(a.crowd_score for a in optimized)
    return round(max(0.0, delta) * config.MINUTES_SAVED_PER_CROWD_POINT, 1)


def confidence(assignments: Sequence[Assignment], constraints: Sequence[Constraint]) -> int:
    """Blend of how much of the trip could move and how much real crowd data backed it."""
    total = len(assignments)
    if not total:
        return 0
    movable = {c.day_id for c in constraints if c.can_reassign}
    flexible = sum(1 for a in assignments if a.day_id in movable)
    with_data = sum(1 for a in assignments if a.has_forecast)
    value = (
        flexible / total * config.FLEXIBILITY_WEIGHT
        + with_data / total * config.DATA_QUALITY_WEIGHT
    )
    return int(_clamp(round(value), 0, 100))


def priority_coverage(assignments: Sequence[Assignment], ratings: Sequence[ActivityRatingSummary]) -> float:
    scores = priority_scores(ratings)
    total = sum(scores.values())
    if total <= 0:
        return 0.0
    present = {a.destination_id for a in assignments if a.destination_id}
    covered = sum(score for destination_id, score in scores.items() if destination_id in present)
    return round(covered / total * 100, 1)


def pacing_balance(assignments: Sequence[Assignment], intensity: Mapping[str, int]) -> float:
    """Share of consecutive destination days where intensity does not step up."""
    levels = [
        intensity_for(a.destination_id, intensity)
        for a in sorted(assignments, key=lambda a: a.date)
        if a.destination_id
    ]
    if len(levels) < 2:
        return 100.0
    steady = sum(1 for prev, nxt in zip(levels, levels[1:]) if nxt <= prev)
    return round(steady / (len(levels) - 1) * 100, 1)


def build_benefits(
    original: Sequence[Assignment],
    optimized: Sequence[Assignment],
    ratings: Sequence[ActivityRatingSummary],
    intensity: Mapping[str, int],
) -> Benefits:
    return Benefits(
        crowd_reduction_pct=crowd_reduction(original, optimized),
        priority_coverage_pct=priority_coverage(optimized, ratings),
        pacing_balance_pct=pacing_balance(optimized, intensity),
        estimated_minutes_saved=minutes_saved(original, optimized),
    )


def rank_score(improvement: int, benefits: Benefits, weights: Optional[StrategyWeights]) -> float:
    """Score used to order alternatives; the improvement score unless weights are given."""
    if weights is None:
        return float(improvement)
    parts: List[tuple[float, float]] = [
        (weights.crowd_level, float(improvement)),
        (weights.must_do, benefits.priority_coverage_pct),
        (weights.energy, benefits.pacing_balance_pct),
    ]
    denom = sum(w for w, _ in parts)
    if denom <= 0:
        return float(improvement)
    return round(sum(w * value for w, value in parts) / denom, 2)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
