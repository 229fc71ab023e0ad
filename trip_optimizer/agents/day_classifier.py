"""Default rule-based day classifier.

The optimizer treats classification as an external collaborator; callers can
inject their own ``classify(day, trip, index)`` callable. This one mirrors the
simple rules the trip editor applies when a day has no explicit label.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable

from trip_optimizer.schemas import DayType, Trip, TripDay

DayClassifier = Callable[[TripDay, Trip, int], DayType]


def classify_day(day: TripDay, trip: Trip, index: int) -> DayType:
    """Label a day from its position in the trip and whether it has a destination.

    ``index`` is the day's chronological position among the trip's days. The
    departure day is detected from the trip's end date rather than the day
    list, so a trip with unplanned gaps is not misread.
    """
    if day.day_type:
        return day.day_type
    if index == 0:
        return "arrival"

    day_dt, end_dt = _safe_parse(day.date), _safe_parse(trip.end_date)
    if day_dt and end_dt and day_dt.date() == end_dt.date():
        return "departure"

    if not day.destination_id:
        return "rest-day"
    return "destination-day"


def _safe_parse(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        try:
            return datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None
