"""Turns canonical trip days into the optimizer's assignment records."""
from __future__ import annotations

from typing import List, Optional

from trip_optimizer import config
from trip_optimizer.schemas import Assignment, TripDay
from trip_optimizer.tools.crowd_gateway import CrowdForecast


def build_assignments(days: List[TripDay], forecast: CrowdForecast) -> List[Assignment]:
    """One assignment per day; missing forecasts fall back to the neutral score."""
    return [make_assignment(day.id, day.destination_id, day.date, forecast) for day in days]


def make_assignment(
    day_id: str,
    destination_id: Optional[str],
    date: str,
    forecast: CrowdForecast,
) -> Assignment:
    crowd_score, has_forecast = forecast.score_for(destination_id, date)
    return Assignment(
        day_id=day_id,
        destination_id=destination_id,
        date=date,
        crowd_score=crowd_score,
        score=config.MAX_CROWD_SCORE - crowd_score,
        has_forecast=has_forecast,
    )


def count_data_gaps(assignments: List[Assignment]) -> int:
    return sum(1 for a in assignments if not a.has_forecast)
