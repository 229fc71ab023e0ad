"""Decides which days the strategies may touch."""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from trip_optimizer.schemas import (
    STRUCTURALLY_FIXED,
    Assignment,
    Constraint,
    ConstraintOverride,
    TripDay,
)


def resolve_constraints(
    days: List[TripDay],
    overrides: Iterable[ConstraintOverride] | None = None,
) -> List[Constraint]:
    """Build one constraint per day.

    A caller override wins over the day's own lock flag. Arrival and departure
    days can never be reassigned, even when the caller explicitly unlocks them.
    """
    by_day: Dict[str, ConstraintOverride] = {o.day_id: o for o in (overrides or [])}

    constraints: List[Constraint] = []
    for day in days:
        override = by_day.get(day.id)
        is_locked = override.is_locked if override is not None else day.is_locked
        reason = override.reason if override is not None else None

        if day.day_type in STRUCTURALLY_FIXED:
            can_reassign = False
            reason = reason or f"{day.day_type} day"
        else:
            can_reassign = not is_locked
            if is_locked and not reason:
                reason = "locked by user"

        constraints.append(
            Constraint(
                day_id=day.id,
                destination_id=day.destination_id,
                is_locked=is_locked,
                day_type=day.day_type,
                can_reassign=can_reassign,
                reason=reason,
            )
        )
    return constraints


def partition(
    assignments: List[Assignment],
    constraints: List[Constraint],
) -> Tuple[List[Assignment], List[Assignment]]:
    """Split assignments into ``(fixed, flexible)``, each in input order.

    Days without a matching constraint are treated as fixed.
    """
    movable = {c.day_id for c in constraints if c.can_reassign}
    fixed = [a for a in assignments if a.day_id not in movable]
    flexible = [a for a in assignments if a.day_id in movable]
    return fixed, flexible
