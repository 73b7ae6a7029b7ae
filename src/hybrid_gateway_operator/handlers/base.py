"""Base handler class with common functionality for all watched kinds."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import kopf

from .. import metrics
from ..logging import log_resource_event
from ..reconciler import ReconcileResult
from ..utils.errors import ConflictError, sanitize_exception
from ..utils.events import (
    emit_orphans_deleted,
    emit_reconcile_failed,
    emit_reconcile_started,
    emit_resources_applied,
    emit_status_updated,
)

CONTROLLER = "hybrid-gateway-operator"


class BaseHandler:
    """Base class for all handlers with common functionality."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "HTTPRoute", "Service")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from metadata.

        Args:
            meta: Kubernetes resource metadata

        Returns:
            Dictionary with resource context fields
        """
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            controller=CONTROLLER,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **log_data)

    def requeue(self, meta: dict[str, Any], delay: float, error: Exception | None = None) -> None:
        """Ask kopf to run the handler again after ``delay`` seconds.

        Raises:
            kopf.TemporaryError: Always
        """
        message = f"Requeueing: {sanitize_exception(error)}" if error is not None else "Requeueing"
        self.log_info(meta, message, event="requeue", reason="Conflict", delay=delay)
        raise kopf.TemporaryError(message, delay=delay)

    def handle_result(self, body: dict[str, Any], result: ReconcileResult, delay: float) -> None:
        """Emit events for what a reconcile did and requeue when it asked to.

        Args:
            body: Root object the events are attached to
            result: Outcome of the reconcile
            delay: Requeue delay in seconds

        Raises:
            kopf.TemporaryError: The reconcile asked to be requeued
        """
        meta = body.get("metadata", {})
        if result.applied:
            emit_resources_applied(body, result.applied)
        if result.deleted:
            emit_orphans_deleted(body, result.deleted)
        if result.status_updated:
            emit_status_updated(body)
        self.log_info(
            meta,
            "Reconciled",
            event="reconciled",
            reason="Reconciled",
            applied=result.applied,
            deleted=result.deleted,
            status_updated=result.status_updated,
            stop=result.stop,
        )
        if result.requeue:
            self.requeue(meta, delay, result.error)

    def reconcile_with_metrics(
        self,
        body: dict[str, Any],
        reconcile_fn: Callable[[], None],
        delay: float,
    ) -> None:
        """Execute reconciliation with metrics and error handling.

        Conflicts raised by ``reconcile_fn`` become a requeue; anything else
        is logged, counted and re-raised for kopf's backoff.

        Args:
            body: Kubernetes resource the handler runs for
            reconcile_fn: Function to execute for reconciliation
            delay: Requeue delay in seconds on conflicts
        """
        meta = body.get("metadata", {})
        emit_reconcile_started(body)
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            try:
                reconcile_fn()
            except ConflictError as e:
                self.requeue(meta, delay, e)
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
        except kopf.TemporaryError:
            metrics.reconcile_total.labels(kind=self.kind, result="requeue").inc()
            raise
        except Exception as e:
            sanitized_error = sanitize_exception(e)
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(body, f"Reconciliation failed: {sanitized_error}")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)
