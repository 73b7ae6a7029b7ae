"""Tests for generated-resource labels and annotations."""

from __future__ import annotations

import pytest

from conftest import make_route
from hybrid_gateway_operator.metadata import (
    AnnotationManager,
    build_annotations,
    build_labels,
    extract_strip_path,
    gateway_key_for_parent_ref,
    is_generated_for_parent,
    label_selector_for_owned_resources,
    split_annotation_list,
)

ROUTES_ANNOTATION = "gateway-operator.konghq.com/hybrid-route"


class TestLabels:
    """Test cases for ownership labels."""

    def test_build_labels(self):
        labels = build_labels(make_route())

        assert labels == {
            "gateway-operator.konghq.com/managed-by": "httproute",
            "gateway-operator.konghq.com/managed-by-name": "route",
            "gateway-operator.konghq.com/managed-by-namespace": "default",
        }

    def test_selector_is_sorted_by_key(self):
        selector = label_selector_for_owned_resources(make_route())

        keys = [pair.split("=")[0] for pair in selector.split(",")]
        assert keys == sorted(keys)
        assert "gateway-operator.konghq.com/managed-by=httproute" in selector.split(",")


class TestAnnotations:
    """Test cases for hybrid annotations."""

    def test_gateway_namespace_defaults_to_route(self):
        annotations = build_annotations(make_route(), {"name": "gw"})

        assert annotations == {
            "gateway-operator.konghq.com/hybrid-route": "default/route",
            "gateway-operator.konghq.com/hybrid-gateways": "default/gw",
        }

    def test_explicit_gateway_namespace(self):
        annotations = build_annotations(make_route(), {"name": "gw", "namespace": "infra"})

        assert annotations["gateway-operator.konghq.com/hybrid-gateways"] == "infra/gw"
        assert gateway_key_for_parent_ref(make_route(), {"name": "gw", "namespace": "infra"}) == "infra/gw"

    def test_is_generated_for_parent(self):
        """Test objects are matched to a parent through the hybrid-gateways annotation."""
        route = make_route()
        obj = {"metadata": {"annotations": build_annotations(route, {"name": "gw"})}}

        assert is_generated_for_parent(obj, route, {"name": "gw"})
        assert is_generated_for_parent(obj, route, {"name": "gw", "namespace": "default"})
        assert not is_generated_for_parent(obj, route, {"name": "gw-b"})
        assert not is_generated_for_parent({"metadata": {}}, route, {"name": "gw"})

    def test_shared_object_names_every_gateway(self):
        route = make_route()
        obj = {"metadata": {"annotations": {"gateway-operator.konghq.com/hybrid-gateways": "default/gw,infra/gw-b"}}}

        assert is_generated_for_parent(obj, route, {"name": "gw-b", "namespace": "infra"})

    @pytest.mark.parametrize(
        "value,expected",
        [(None, True), ("true", True), ("false", False), ("0", False), ("F", False), ("junk", True)],
    )
    def test_extract_strip_path(self, value, expected):
        annotations = {} if value is None else {"konghq.com/strip-path": value}

        assert extract_strip_path(annotations) is expected

    def test_split_annotation_list(self):
        assert split_annotation_list(" a/b, ,c/d ") == ["a/b", "c/d"]
        assert split_annotation_list(None) == []


class TestAnnotationManager:
    """Test cases for AnnotationManager."""

    def setup_method(self):
        self.manager = AnnotationManager()
        self.first = make_route(name="first")
        self.second = make_route(name="second")

    def test_get_and_contains(self):
        obj = {"metadata": {"annotations": {ROUTES_ANNOTATION: "default/first,default/second"}}}

        assert self.manager.get_routes(obj) == ["default/first", "default/second"]
        assert self.manager.contains_route(obj, self.second)
        assert not self.manager.contains_route(obj, make_route(name="third"))
        assert self.manager.get_routes({"metadata": {"annotations": None}}) == []

    def test_remove_route(self):
        obj = {"metadata": {"annotations": {ROUTES_ANNOTATION: "default/first,default/second"}}}

        assert self.manager.remove_route(obj, self.first)
        assert not self.manager.remove_route(obj, self.first)
        assert self.manager.get_routes(obj) == ["default/second"]

    def test_removing_last_route_drops_annotation(self):
        obj = {"metadata": {"annotations": {ROUTES_ANNOTATION: "default/first"}}}

        self.manager.remove_route(obj, self.first)

        assert ROUTES_ANNOTATION not in obj["metadata"]["annotations"]
