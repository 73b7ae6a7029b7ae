"""Tests for cache utilities."""

from __future__ import annotations

from unittest.mock import patch

from hybrid_gateway_operator.utils.cache import (
    get_cached_object,
    invalidate_cache,
    make_cache_key,
    set_cache_ttl,
    set_cached_object,
)


class TestCacheKey:
    """Test cases for make_cache_key function."""

    def test_make_cache_key(self):
        """Test making cache key."""
        assert make_cache_key("GatewayClass", "", "kong") == "GatewayClass::kong"

    def test_make_cache_key_different_values(self):
        """Test cache keys are unique for different resources."""
        key1 = make_cache_key("Gateway", "ns1", "gw")
        key2 = make_cache_key("Gateway", "ns2", "gw")
        key3 = make_cache_key("GatewayClass", "ns1", "gw")

        assert len({key1, key2, key3}) == 3


class TestCacheOperations:
    """Test cases for cache get/set operations."""

    def test_set_and_get_cached_object(self):
        """Test setting and getting cached object."""
        obj = {"spec": {"controllerName": "x"}}

        set_cached_object("GatewayClass::kong", obj)

        assert get_cached_object("GatewayClass::kong") == obj

    def test_get_missing(self):
        assert get_cached_object("missing") is None

    @patch("hybrid_gateway_operator.utils.cache._cache_ttl", 0.0)
    def test_expired_entry(self):
        """Test expired entries are dropped on read."""
        with patch("hybrid_gateway_operator.utils.cache.time.time", side_effect=[100.0, 101.0]):
            set_cached_object("key", "value")
            assert get_cached_object("key") is None

    @patch("hybrid_gateway_operator.utils.cache._cache_ttl", 30.0)
    def test_set_cache_ttl(self):
        """Test the configured TTL decides expiry."""
        set_cache_ttl(5.0)

        with patch("hybrid_gateway_operator.utils.cache.time.time", side_effect=[100.0, 104.0, 106.0]):
            set_cached_object("key", "value")
            assert get_cached_object("key") == "value"
            assert get_cached_object("key") is None

    def test_invalidate_by_pattern(self):
        set_cached_object("GatewayClass::a", 1)
        set_cached_object("Gateway:ns:b", 2)

        invalidate_cache("GatewayClass")

        assert get_cached_object("GatewayClass::a") is None
        assert get_cached_object("Gateway:ns:b") == 2
