"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_SECURITY_GROUP_CREATED,
    EVENT_REASON_SECURITY_GROUP_DELETED,
    EVENT_REASON_SECURITY_GROUP_UPDATED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (apiVersion, kind and metadata are used)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_security_group_created(body: dict[str, Any], group_id: str) -> None:
    emit_event(body, EVENT_REASON_SECURITY_GROUP_CREATED, f"Security group {group_id} created")


def emit_security_group_updated(body: dict[str, Any], group_id: str) -> None:
    emit_event(body, EVENT_REASON_SECURITY_GROUP_UPDATED, f"Security group {group_id} updated")


def emit_security_group_deleted(body: dict[str, Any], group_id: str) -> None:
    emit_event(body, EVENT_REASON_SECURITY_GROUP_DELETED, f"Security group {group_id} deleted")
