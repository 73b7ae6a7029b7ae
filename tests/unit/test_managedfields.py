"""Tests for managed fields extraction and structural comparison."""

from __future__ import annotations

import pytest

from hybrid_gateway_operator.gvk import KONG_ROUTE_GVK, KONG_SERVICE_GVK
from hybrid_gateway_operator.managedfields import compare, extract_managed_fields, prune_desired_obj
from hybrid_gateway_operator.utils.errors import ValidationError

FIELD_MANAGER = "hybrid-gateway-operator"


def kong_route(**spec):
    return {
        "apiVersion": KONG_ROUTE_GVK.api_version,
        "kind": KONG_ROUTE_GVK.kind,
        "metadata": {"name": "r", "namespace": "default", "labels": {"a": "b"}},
        "spec": spec,
    }


class TestExtractManagedFields:
    """Test cases for extract_managed_fields."""

    def test_extracts_only_owned_fields(self):
        live = kong_route(paths=["/"], protocols=["http"], regex_priority=0)
        live["metadata"]["managedFields"] = [
            {
                "manager": FIELD_MANAGER,
                "operation": "Apply",
                "fieldsV1": {"f:metadata": {"f:labels": {"f:a": {}}}, "f:spec": {"f:paths": {}}},
            },
            {
                "manager": "kube-controller-manager",
                "operation": "Update",
                "fieldsV1": {"f:spec": {"f:regex_priority": {}}},
            },
        ]

        snapshot = extract_managed_fields(live, FIELD_MANAGER)

        assert snapshot == {
            "apiVersion": KONG_ROUTE_GVK.api_version,
            "kind": "KongRoute",
            "metadata": {"labels": {"a": "b"}},
            "spec": {"paths": ["/"]},
        }

    def test_status_subresource_entries_are_ignored(self):
        live = kong_route(paths=["/"])
        live["status"] = {"conditions": []}
        live["metadata"]["managedFields"] = [
            {"manager": FIELD_MANAGER, "operation": "Apply", "subresource": "status", "fieldsV1": {"f:status": {}}},
        ]

        assert extract_managed_fields(live, FIELD_MANAGER) is None

    def test_keyed_list_items(self):
        live = kong_route()
        live["metadata"]["ownerReferences"] = [{"uid": "1", "name": "x"}, {"uid": "2", "name": "y"}]
        live["metadata"]["managedFields"] = [{
            "manager": FIELD_MANAGER,
            "operation": "Apply",
            "fieldsV1": {"f:metadata": {"f:ownerReferences": {'k:{"uid":"2"}': {}}}},
        }]

        snapshot = extract_managed_fields(live, FIELD_MANAGER)

        assert snapshot["metadata"]["ownerReferences"] == [{"uid": "2", "name": "y"}]

    def test_no_entry_for_manager(self):
        assert extract_managed_fields(kong_route(), FIELD_MANAGER) is None


class TestPruneDesiredObj:
    """Test cases for prune_desired_obj."""

    def test_drops_identity_and_empty_maps(self):
        desired = kong_route(paths=["/"])
        desired["metadata"]["annotations"] = {}

        pruned = prune_desired_obj(desired)

        assert pruned["metadata"] == {"labels": {"a": "b"}}
        assert desired["metadata"]["name"] == "r"


class TestCompare:
    """Test cases for compare."""

    def test_equal_objects(self):
        assert compare(kong_route(paths=["/"]), kong_route(paths=["/"])).is_empty()

    def test_differences_are_reported_by_path(self):
        current = kong_route(paths=["/"], strip_path=True)
        desired = kong_route(paths=["/x"], hosts=["a.example.com"])

        comparison = compare(current, desired)

        assert comparison.added == [".spec.hosts"]
        assert comparison.removed == [".spec.strip_path"]
        assert comparison.modified == [".spec.paths"]
        assert not comparison.is_empty()

    def test_missing_kind(self):
        with pytest.raises(ValidationError, match="missing apiVersion or kind"):
            compare({"apiVersion": "v1"}, kong_route())

    def test_unsupported_type(self):
        unsupported = {"apiVersion": "apps/v1", "kind": "Deployment"}

        with pytest.raises(ValidationError, match="unsupported type"):
            compare(unsupported, unsupported)

    def test_type_mismatch(self):
        service = {"apiVersion": KONG_SERVICE_GVK.api_version, "kind": KONG_SERVICE_GVK.kind}

        with pytest.raises(ValidationError, match="cannot compare"):
            compare(kong_route(), service)
