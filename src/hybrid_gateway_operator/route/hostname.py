"""Gateway API hostname matching."""

from __future__ import annotations


def _is_wildcard(hostname: str) -> bool:
    return hostname.startswith("*.")


def _wildcard_matches(wildcard: str, hostname: str) -> bool:
    """Return True if ``*.suffix`` covers ``hostname`` (at least one extra label)."""
    suffix = wildcard[1:]
    return hostname.endswith(suffix) and len(hostname) > len(suffix)


def hostname_intersection(listener_hostname: str, route_hostname: str) -> str:
    """Return the hostname both sides accept, or ``""`` when they are disjoint.

    An empty listener hostname accepts anything. When both are wildcards or one
    is a wildcard covering the other, the more specific hostname is returned.

    Args:
        listener_hostname: Hostname of a Gateway listener (may be empty)
        route_hostname: One of the route's hostnames

    Returns:
        The intersecting hostname, or ``""``
    """
    listener_hostname = listener_hostname.lower()
    route_hostname = route_hostname.lower()

    if not listener_hostname:
        return route_hostname
    if not route_hostname:
        return listener_hostname
    if listener_hostname == route_hostname:
        return route_hostname

    listener_wild = _is_wildcard(listener_hostname)
    route_wild = _is_wildcard(route_hostname)

    if listener_wild and _wildcard_matches(listener_hostname, route_hostname.lstrip("*")):
        return route_hostname
    if route_wild and _wildcard_matches(route_hostname, listener_hostname.lstrip("*")):
        return listener_hostname
    return ""
