"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_ORPHAN_DELETED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_RESOURCE_APPLIED,
    EVENT_REASON_STATUS_UPDATED,
)


def emit_event(
    meta: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        meta: Resource the event is attached to (kopf body or object dict)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        meta,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(meta: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(meta, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(meta: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(meta, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_resources_applied(meta: dict[str, Any], count: int) -> None:
    emit_event(meta, EVENT_REASON_RESOURCE_APPLIED, f"Applied {count} generated resource(s)")


def emit_orphans_deleted(meta: dict[str, Any], count: int) -> None:
    emit_event(meta, EVENT_REASON_ORPHAN_DELETED, f"Deleted {count} orphaned resource(s)")


def emit_status_updated(meta: dict[str, Any]) -> None:
    emit_event(meta, EVENT_REASON_STATUS_UPDATED, "Route status updated")
