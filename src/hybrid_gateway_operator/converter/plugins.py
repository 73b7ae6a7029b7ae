"""Translation of HTTPRoute filters into Kong plugin configurations."""

from __future__ import annotations

from typing import Any

from ..utils.errors import ValidationError

FILTER_REQUEST_HEADER_MODIFIER = "RequestHeaderModifier"
FILTER_RESPONSE_HEADER_MODIFIER = "ResponseHeaderModifier"
FILTER_REQUEST_REDIRECT = "RequestRedirect"
FILTER_URL_REWRITE = "URLRewrite"

PATH_MODIFIER_FULL_PATH = "ReplaceFullPath"
PATH_MODIFIER_PREFIX_MATCH = "ReplacePrefixMatch"


def _header_modifier_config(modifier: dict[str, Any] | None, filter_type: str) -> dict[str, Any]:
    if modifier is None:
        raise ValidationError(f"{filter_type} filter config is missing")

    config: dict[str, dict[str, list[str]]] = {}

    def add(section: str, value: str) -> None:
        config.setdefault(section, {}).setdefault("headers", []).append(value)

    for header in modifier.get("set") or []:
        add("replace", f"{header['name']}:{header['value']}")
        add("add", f"{header['name']}:{header['value']}")
    for header in modifier.get("add") or []:
        add("append", f"{header['name']}:{header['value']}")
    for name in modifier.get("remove") or []:
        add("remove", name)

    if not config:
        raise ValidationError(f"{filter_type} filter config is empty")
    return config


def _replace_full_path(value: str | None) -> str:
    return value or "/"


def _normalize_path(path: str | None) -> str:
    if not path or path == "/":
        return "/"
    return path.rstrip("/")


def _replace_prefix_match(replace_prefix: str, path: str) -> str:
    """Build the Kong URI template rewriting a matched prefix."""
    replace_prefix = replace_prefix.rstrip("/")
    path_is_root = path == "/"
    if not replace_prefix:
        if path_is_root:
            return '$(uri_captures[1] == nil and "/" or "/" .. uri_captures[1])'
        return '$(uri_captures[1] == nil and "/" or uri_captures[1])'
    if path_is_root:
        return f'{replace_prefix}$(uri_captures[1] == nil and "" or "/" .. uri_captures[1])'
    return f"{replace_prefix}$(uri_captures[1])"


def _redirect_config(redirect: dict[str, Any] | None) -> dict[str, Any]:
    if redirect is None:
        raise ValidationError("RequestRedirect filter config is missing")

    location = ""
    if redirect.get("hostname"):
        location = f"{redirect.get('scheme') or 'http'}://{redirect['hostname']}"
        if redirect.get("port") is not None:
            location += f":{redirect['port']}"

    path = ""
    modifier = redirect.get("path")
    if modifier is not None:
        modifier_type = modifier.get("type")
        if modifier_type == PATH_MODIFIER_FULL_PATH:
            path = _replace_full_path(modifier.get("replaceFullPath"))
        elif modifier_type == PATH_MODIFIER_PREFIX_MATCH:
            path = "/"
        else:
            raise ValidationError(f"unsupported RequestRedirect path modifier type: {modifier_type}")

    keep_incoming_path = False
    if not path:
        keep_incoming_path = True
        path = "/"

    return {
        "keep_incoming_path": keep_incoming_path,
        "location": location + path,
        "status_code": redirect.get("statusCode") or 302,
    }


def _url_rewrite_config(rewrite: dict[str, Any] | None, prefix_path: str) -> dict[str, Any]:
    if rewrite is None:
        raise ValidationError("URLRewrite filter config is missing")

    config: dict[str, Any] = {}
    if rewrite.get("hostname"):
        headers = [f"host:{rewrite['hostname']}"]
        config["replace"] = {"headers": list(headers)}
        config["add"] = {"headers": list(headers)}

    modifier = rewrite.get("path")
    if modifier is not None:
        modifier_type = modifier.get("type")
        if modifier_type == PATH_MODIFIER_FULL_PATH:
            uri = _replace_full_path(modifier.get("replaceFullPath"))
        elif modifier_type == PATH_MODIFIER_PREFIX_MATCH:
            uri = _replace_prefix_match(
                _normalize_path(modifier.get("replacePrefixMatch")), _normalize_path(prefix_path)
            )
        else:
            raise ValidationError(f"unsupported URLRewrite path modifier type: {modifier_type}")
        config.setdefault("replace", {})["uri"] = uri
    return config


def get_path_prefix_match_value(rule: dict[str, Any]) -> str:
    """Return the first PathPrefix value among the rule's matches, or ``""``."""
    for match in rule.get("matches") or []:
        path = match.get("path") or {}
        if path.get("type") == "PathPrefix" and path.get("value") is not None:
            return path["value"]
    return ""


def rule_uses_capture_group(rule: dict[str, Any]) -> bool:
    """True when a URLRewrite filter rewrites the matched prefix."""
    for route_filter in rule.get("filters") or []:
        if route_filter.get("type") != FILTER_URL_REWRITE:
            continue
        path = (route_filter.get("urlRewrite") or {}).get("path") or {}
        if path.get("type") == PATH_MODIFIER_PREFIX_MATCH:
            return True
    return False


def translate_filter(rule: dict[str, Any], route_filter: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Translate one HTTPRoute filter.

    Args:
        rule: The rule the filter belongs to
        route_filter: The filter

    Returns:
        ``(plugin_name, plugin_config)``

    Raises:
        ValidationError: For unsupported filter types or incomplete filter configs
    """
    filter_type = route_filter.get("type")
    if filter_type == FILTER_REQUEST_HEADER_MODIFIER:
        return "request-transformer", _header_modifier_config(route_filter.get("requestHeaderModifier"), filter_type)
    if filter_type == FILTER_RESPONSE_HEADER_MODIFIER:
        return "response-transformer", _header_modifier_config(route_filter.get("responseHeaderModifier"), filter_type)
    if filter_type == FILTER_REQUEST_REDIRECT:
        return "redirect", _redirect_config(route_filter.get("requestRedirect"))
    if filter_type == FILTER_URL_REWRITE:
        return "request-transformer", _url_rewrite_config(
            route_filter.get("urlRewrite"), get_path_prefix_match_value(rule)
        )
    raise ValidationError(f"unsupported filter type: {filter_type}")
