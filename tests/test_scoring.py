from trip_optimizer.schemas import Assignment, Benefits, Constraint, StrategyWeights
from trip_optimizer.scoring import (
    confidence,
    crowd_reduction,
    improvement_score,
    minutes_saved,
    pacing_balance,
    rank_score,
)


def _assignment(day_id: str, crowd: float, destination: str = "epcot", has_forecast: bool = True) -> Assignment:
    return Assignment(
        day_id=day_id,
        destination_id=destination,
        date=f"2025-03-0{day_id[-1]}",
        crowd_score=crowd,
        score=10 - crowd,
        has_forecast=has_forecast,
    )


def _constraints(flexible_ids, all_ids):
    return [Constraint(day_id=i, can_reassign=i in flexible_ids) for i in all_ids]


def test_unchanged_assignment_scores_fifty_and_no_reduction():
    plan = [_assignment("d1", 6), _assignment("d2", 7)]

    assert improvement_score(plan, plan) == 50
    assert crowd_reduction(plan, plan) == 0.0
    assert minutes_saved(plan, plan) == 0.0


def test_improvement_and_reduction_for_quieter_plan():
    original = [_assignment("d1", 8), _assignment("d2", 8)]
    optimized = [_assignment("d1", 2), _assignment("d2", 4)]

    # scores 4 -> 14: +250% clamps to 100
    assert improvement_score(original, optimized) == 100
    assert crowd_reduction(original, optimized) == 62.5
    assert minutes_saved(original, optimized) == 150.0


def test_crowd_reduction_never_negative():
    original = [_assignment("d1", 2)]
    worse = [_assignment("d1", 9)]

    assert crowd_reduction(original, worse) == 0.0
    assert improvement_score(original, worse) == 0


def test_improvement_score_with_zero_original_total():
    packed = [_assignment("d1", 10)]
    quieter = [_assignment("d1", 6)]

    assert improvement_score(packed, packed) == 50
    assert improvement_score(packed, quieter) == 100


def test_confidence_all_locked_is_data_quality_floor():
    ids = ["d1", "d2", "d3", "d4"]
    plan = [_assignment(i, 5) for i in ids]

    assert confidence(plan, _constraints(set(), ids)) == 30


def test_confidence_all_flexible_with_full_data_is_hundred():
    ids = ["d1", "d2", "d3"]
    plan = [_assignment(i, 5) for i in ids]

    assert confidence(plan, _constraints(set(ids), ids)) == 100


def test_confidence_stays_in_range_without_data():
    ids = ["d1", "d2"]
    plan = [_assignment(i, 5, has_forecast=False) for i in ids]

    assert confidence(plan, _constraints({"d1"}, ids)) == 35
    assert confidence([], []) == 0


def test_pacing_balance_rewards_descending_intensity():
    table = {"magic-kingdom": 5, "epcot": 2}
    front_loaded = [_assignment("d1", 5, "magic-kingdom"), _assignment("d2", 5, "epcot")]
    back_loaded = [_assignment("d1", 5, "epcot"), _assignment("d2", 5, "magic-kingdom")]

    assert pacing_balance(front_loaded, table) == 100.0
    assert pacing_balance(back_loaded, table) == 0.0
    assert pacing_balance(front_loaded[:1], table) == 100.0


def test_rank_score_blends_weights():
    benefits = Benefits(priority_coverage_pct=80.0, pacing_balance_pct=40.0)

    assert rank_score(60, benefits, None) == 60.0
    assert rank_score(60, benefits, StrategyWeights(crowd_level=1, must_do=1, energy=0)) == 70.0
    assert rank_score(60, benefits, StrategyWeights(crowd_level=0, must_do=0, energy=0)) == 60.0
