"""Canonicalises a trip's day list before optimization."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Set, Tuple

from trip_optimizer.agents.day_classifier import DayClassifier, classify_day
from trip_optimizer.errors import ValidationError
from trip_optimizer.schemas import Trip, TripDay


def normalize_trip(trip: Trip, classifier: DayClassifier = classify_day) -> Tuple[Trip, List[str]]:
    """Return a canonical copy of ``trip`` plus notes about what was dropped.

    Dates are reduced to ``YYYY-MM-DD``, days outside the trip bounds or with
    unreadable dates are removed, duplicate dates keep their first occurrence
    in input order, the survivors are sorted chronologically and any day
    without a label is classified. The caller's objects are never mutated.
    """
    start, end = _parse_day(trip.start_date), _parse_day(trip.end_date)
    if start is None or end is None:
        raise ValidationError(
            f"Trip {trip.id!r} has unreadable date bounds ({trip.start_date!r} to {trip.end_date!r})"
        )
    notes: List[str] = []
    if end < start:
        # swap to avoid an empty range
        start, end = end, start
        notes.append("Trip start and end dates were reversed; swapped them.")

    kept: List[Tuple[date, TripDay]] = []
    seen: Set[date] = set()
    unreadable = out_of_range = duplicates = 0
    for day in trip.days:
        parsed = _parse_day(day.date)
        if parsed is None:
            unreadable += 1
            continue
        if parsed < start or parsed > end:
            out_of_range += 1
            continue
        if parsed in seen:
            duplicates += 1
            continue
        seen.add(parsed)
        kept.append((parsed, day.model_copy(update={"date": parsed.isoformat()})))

    if unreadable:
        notes.append(f"Dropped {unreadable} day(s) with unreadable dates.")
    if out_of_range:
        notes.append(f"Dropped {out_of_range} day(s) outside {start.isoformat()} to {end.isoformat()}.")
    if duplicates:
        notes.append(f"Dropped {duplicates} duplicate day(s); kept the first entry for each date.")

    if not kept:
        raise ValidationError(f"Trip {trip.id!r} has no valid days between {start.isoformat()} and {end.isoformat()}")

    kept.sort(key=lambda pair: pair[0])
    canonical = trip.model_copy(
        update={
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "days": [day for _, day in kept],
        }
    )

    labelled: List[TripDay] = []
    for idx, day in enumerate(canonical.days):
        if day.day_type is None:
            day = day.model_copy(update={"day_type": classifier(day, canonical, idx)})
        labelled.append(day)

    return canonical.model_copy(update={"days": labelled}), notes


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
