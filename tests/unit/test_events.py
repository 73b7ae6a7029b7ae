"""Tests for Kubernetes event utilities."""

from __future__ import annotations

from unittest.mock import patch

from hybrid_gateway_operator.utils.events import (
    emit_event,
    emit_orphans_deleted,
    emit_reconcile_failed,
    emit_reconcile_started,
    emit_resources_applied,
    emit_status_updated,
)

META = {"name": "route", "namespace": "default"}


class TestEmitEvent:
    """Test cases for emit_event function."""

    @patch("hybrid_gateway_operator.utils.events.kopf.event")
    def test_emit_event_normal(self, mock_event):
        """Test emitting normal event."""
        emit_event(META, "TestReason", "Test message")

        mock_event.assert_called_once_with(META, reason="TestReason", message="Test message", type="Normal")

    @patch("hybrid_gateway_operator.utils.events.kopf.event")
    def test_emit_event_warning(self, mock_event):
        """Test emitting warning event."""
        emit_event(META, "ErrorReason", "Error occurred", type_="Warning")

        mock_event.assert_called_once_with(META, reason="ErrorReason", message="Error occurred", type="Warning")


class TestReconcileEvents:
    """Test cases for reconciliation events."""

    @patch("hybrid_gateway_operator.utils.events.kopf.event")
    def test_emit_reconcile_started(self, mock_event):
        emit_reconcile_started(META)

        assert mock_event.call_args.kwargs["reason"] == "ReconcileStarted"

    @patch("hybrid_gateway_operator.utils.events.kopf.event")
    def test_emit_reconcile_failed(self, mock_event):
        emit_reconcile_failed(META, "boom")

        assert mock_event.call_args.kwargs == {"reason": "ReconcileFailed", "message": "boom", "type": "Warning"}

    @patch("hybrid_gateway_operator.utils.events.kopf.event")
    def test_resource_events(self, mock_event):
        emit_resources_applied(META, 3)
        emit_orphans_deleted(META, 2)
        emit_status_updated(META)

        messages = [call.kwargs["message"] for call in mock_event.call_args_list]
        assert messages == [
            "Applied 3 generated resource(s)",
            "Deleted 2 orphaned resource(s)",
            "Route status updated",
        ]
