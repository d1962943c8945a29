"""Utilities for managing SecurityGroup status conditions."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from ..models import Condition, ConditionReason, ConditionStatus, ConditionType


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_condition(conditions: Iterable[Condition], condition_type: ConditionType) -> Condition:
    """Return the condition of the given type.

    Args:
        conditions: Existing conditions
        condition_type: Type of condition to look up

    Returns:
        The stored condition, or an Unknown condition of that type if none is stored
    """
    for cond in conditions:
        if cond.type == condition_type:
            return cond
    return Condition(type=condition_type, status=ConditionStatus.UNKNOWN)


def set_conditions(conditions: list[Condition], *new_conditions: Condition) -> list[Condition]:
    """Merge conditions into the list, keeping at most one entry per type.

    An entry of the same type is replaced only when it differs from the new one
    (ignoring lastTransitionTime). If the status value did not change, the
    existing lastTransitionTime is carried over. Types not present yet are
    appended, so existing entries never move.

    Args:
        conditions: Existing conditions
        *new_conditions: Conditions to set

    Returns:
        Updated list of conditions
    """
    result = list(conditions)
    for new in new_conditions:
        now = new.last_transition_time or _now()
        for idx, existing in enumerate(result):
            if existing.type != new.type:
                continue
            if existing.same_as(new):
                break
            if existing.status == new.status and existing.last_transition_time:
                now = existing.last_transition_time
            result[idx] = replace(new, last_transition_time=now)
            break
        else:
            result.append(replace(new, last_transition_time=now))
    return result


def conditions_equal(a: list[Condition] | None, b: list[Condition] | None) -> bool:
    """Compare two condition lists as sets, ignoring order and timestamps."""
    if not a and not b:
        return True
    if not a or not b or len(a) != len(b):
        return False

    a_sorted = sorted(a, key=lambda c: c.type.value)
    b_sorted = sorted(b, key=lambda c: c.type.value)
    return all(x.same_as(y) for x, y in zip(a_sorted, b_sorted))


def creating() -> Condition:
    """Ready=False while the security group is being created."""
    return Condition(ConditionType.READY, ConditionStatus.FALSE, ConditionReason.CREATING)


def deleting() -> Condition:
    """Ready=False while the security group is being deleted."""
    return Condition(ConditionType.READY, ConditionStatus.FALSE, ConditionReason.DELETING)


def spec_changing() -> Condition:
    """Ready=False while the security group is being updated."""
    return Condition(ConditionType.READY, ConditionStatus.FALSE, ConditionReason.UPDATING)


def available() -> Condition:
    """Ready=True once the security group exists and matches the spec."""
    return Condition(ConditionType.READY, ConditionStatus.TRUE, ConditionReason.AVAILABLE)


def unavailable() -> Condition:
    """Ready=False when the security group cannot be reached or used."""
    return Condition(ConditionType.READY, ConditionStatus.FALSE, ConditionReason.UNAVAILABLE)


def reconcile_success() -> Condition:
    """Synced=True after a pass that reached the DCS API without error."""
    return Condition(ConditionType.SYNCED, ConditionStatus.TRUE, ConditionReason.RECONCILE_SUCCESS)


def reconcile_error(error: Exception | str) -> Condition:
    """Synced=False carrying the error that stopped the pass."""
    return Condition(
        ConditionType.SYNCED,
        ConditionStatus.FALSE,
        ConditionReason.RECONCILE_ERROR,
        message=str(error),
    )
