"""Tests for listener matching, allowed routes and hostname filters."""

from __future__ import annotations

import pytest

from conftest import make_gateway, make_listener, make_namespace, make_route
from hybrid_gateway_operator.route.hostname import hostname_intersection
from hybrid_gateway_operator.route.status import (
    build_accepted_condition,
    filter_listeners_by_allowed_routes,
    filter_listeners_by_hostnames,
    filter_matching_listeners,
)
from hybrid_gateway_operator.utils.errors import OperatorError, ValidationError

ROUTE_GROUP_KIND = {"group": "gateway.networking.k8s.io", "kind": "HTTPRoute"}


class TestFilterMatchingListeners:
    """Test cases for sectionName/port listener matching."""

    def setup_method(self):
        self.listeners = [
            make_listener("http", 80),
            make_listener("http-alt", 8080),
            make_listener("https", 443, protocol="HTTPS"),
        ]
        self.gateway = make_gateway(listeners=self.listeners)

    def test_no_constraints_matches_all_ready_listeners(self):
        listeners, cond = filter_matching_listeners(self.gateway, {"name": "gw"}, self.listeners)

        assert cond is None
        assert [listener["name"] for listener in listeners] == ["http", "http-alt", "https"]

    def test_section_name(self):
        listeners, cond = filter_matching_listeners(self.gateway, {"name": "gw", "sectionName": "http-alt"}, self.listeners)

        assert cond is None
        assert [listener["name"] for listener in listeners] == ["http-alt"]

    def test_port(self):
        listeners, _ = filter_matching_listeners(self.gateway, {"name": "gw", "port": 443}, self.listeners)

        assert [listener["name"] for listener in listeners] == ["https"]

    def test_section_name_and_port_must_both_match(self):
        listeners, cond = filter_matching_listeners(
            self.gateway, {"name": "gw", "sectionName": "http", "port": 8080}, self.listeners
        )

        assert listeners == []
        assert cond["reason"] == "NoMatchingParent"
        assert cond["status"] == "False"

    def test_listener_not_programmed_is_excluded(self):
        gateway = make_gateway(listeners=self.listeners, programmed={"http": "False"})

        listeners, cond = filter_matching_listeners(gateway, {"name": "gw", "sectionName": "http"}, self.listeners)

        assert listeners == []
        assert cond["reason"] == "NoMatchingParent"
        assert "not ready" in cond["message"]

    def test_listener_without_status_is_excluded(self):
        gateway = make_gateway(listeners=self.listeners)
        gateway["status"] = {}

        listeners, cond = filter_matching_listeners(gateway, {"name": "gw"}, self.listeners)

        assert listeners == []
        assert cond["reason"] == "NoMatchingParent"

    def test_non_http_protocol_is_excluded(self):
        listeners = [make_listener("tcp", 9000, protocol="TCP")]
        gateway = make_gateway(listeners=listeners)

        result, cond = filter_matching_listeners(gateway, {"name": "gw"}, listeners)

        assert result == []
        assert cond is not None


class TestFilterListenersByAllowedRoutes:
    """Test cases for allowedRoutes filtering."""

    def _filter(self, allowed_routes, namespace=None, parent_ref=None):
        listener = make_listener(allowed_routes=allowed_routes)
        gateway = make_gateway(listeners=[listener])
        return filter_listeners_by_allowed_routes(
            gateway,
            parent_ref or {"name": "gw"},
            [listener],
            ROUTE_GROUP_KIND,
            namespace or make_namespace("default"),
        )

    def test_no_allowed_routes_admits(self):
        listeners, cond = self._filter(None)

        assert len(listeners) == 1
        assert cond is None

    def test_kind_allow_list_rejects_other_kinds(self):
        listeners, cond = self._filter({"kinds": [{"kind": "GRPCRoute"}]})

        assert listeners == []
        assert cond["reason"] == "NotAllowedByListeners"

    def test_kind_allow_list_admits_route_kind(self):
        listeners, _ = self._filter({"kinds": [{"group": "gateway.networking.k8s.io", "kind": "HTTPRoute"}]})

        assert len(listeners) == 1

    def test_from_all(self):
        listeners, _ = self._filter({"namespaces": {"from": "All"}}, namespace=make_namespace("other"))

        assert len(listeners) == 1

    def test_from_same_rejects_other_namespace(self):
        listeners, cond = self._filter({"namespaces": {"from": "Same"}}, namespace=make_namespace("other"))

        assert listeners == []
        assert cond["reason"] == "NotAllowedByListeners"

    def test_from_same_admits_gateway_namespace(self):
        listeners, _ = self._filter({"namespaces": {"from": "Same"}})

        assert len(listeners) == 1

    def test_from_selector_matches_labels(self):
        allowed = {"namespaces": {"from": "Selector", "selector": {"matchLabels": {"team": "a"}}}}

        admitted, _ = self._filter(allowed, namespace=make_namespace("apps", {"team": "a"}))
        rejected, cond = self._filter(allowed, namespace=make_namespace("apps", {"team": "b"}))

        assert len(admitted) == 1
        assert rejected == []
        assert cond["reason"] == "NotAllowedByListeners"

    def test_from_selector_with_expressions(self):
        allowed = {
            "namespaces": {
                "from": "Selector",
                "selector": {"matchExpressions": [{"key": "env", "operator": "In", "values": ["prod", "stage"]}]},
            }
        }

        listeners, _ = self._filter(allowed, namespace=make_namespace("apps", {"env": "stage"}))

        assert len(listeners) == 1

    def test_invalid_selector_is_a_hard_error(self):
        """Test an invalid selector raises instead of silently admitting the route."""
        allowed = {
            "namespaces": {
                "from": "Selector",
                "selector": {"matchExpressions": [{"key": "env", "operator": "Bogus"}]},
            }
        }

        with pytest.raises(ValidationError, match="invalid allowedRoutes.namespaces.selector"):
            self._filter(allowed)

    def test_unknown_from_is_a_hard_error(self):
        with pytest.raises(ValidationError, match="unknown value for allowedRoutes.namespaces.from"):
            self._filter({"namespaces": {"from": "Elsewhere"}})


class TestHostnames:
    """Test cases for hostname intersection and filtering."""

    @pytest.mark.parametrize(
        "listener,route,expected",
        [
            ("", "foo.example.com", "foo.example.com"),
            ("foo.example.com", "foo.example.com", "foo.example.com"),
            ("*.example.com", "foo.example.com", "foo.example.com"),
            ("foo.example.com", "*.example.com", "foo.example.com"),
            ("*.example.com", "example.com", ""),
            ("bar.example.com", "foo.example.com", ""),
            ("*.example.com", "*.foo.example.com", "*.foo.example.com"),
            ("Foo.Example.com", "foo.example.com", "foo.example.com"),
        ],
    )
    def test_hostname_intersection(self, listener, route, expected):
        assert hostname_intersection(listener, route) == expected

    def test_listener_without_hostname_matches_anything(self):
        listeners, cond = filter_listeners_by_hostnames([make_listener()], ["foo.example.com"])

        assert len(listeners) == 1
        assert cond is None

    def test_no_intersection(self):
        listeners, cond = filter_listeners_by_hostnames(
            [make_listener(hostname="bar.example.com")], ["foo.example.com"]
        )

        assert listeners == []
        assert cond["reason"] == "NoMatchingListenerHostname"


class TestBuildAcceptedCondition:
    """Test the full Accepted pipeline."""

    def test_single_ready_listener_is_accepted(self, cluster):
        """Test one parentRef without sectionName/port on a ready matching listener."""
        gateway = make_gateway(listeners=[make_listener(hostname="*.example.com")])
        route = make_route(hostnames=["foo.example.com"], generation=3)

        cond = build_accepted_condition(cluster, gateway, route, {"name": "gw"})

        assert cond["type"] == "Accepted"
        assert cond["status"] == "True"
        assert cond["reason"] == "Accepted"
        assert cond["observedGeneration"] == 3

    def test_hostname_mismatch(self, cluster):
        gateway = make_gateway(listeners=[make_listener(hostname="bar.example.com")])
        route = make_route(hostnames=["foo.example.com"])

        cond = build_accepted_condition(cluster, gateway, route, {"name": "gw"})

        assert cond["status"] == "False"
        assert cond["reason"] == "NoMatchingListenerHostname"

    def test_no_matching_parent_short_circuits(self, cluster):
        gateway = make_gateway()

        cond = build_accepted_condition(cluster, gateway, make_route(), {"name": "gw", "sectionName": "missing"})

        assert cond["reason"] == "NoMatchingParent"

    def test_missing_route_namespace(self, fake_client):
        with pytest.raises(OperatorError, match="failed to get namespace"):
            build_accepted_condition(fake_client, make_gateway(), make_route(), {"name": "gw"})
