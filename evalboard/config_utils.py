"""Configuration helpers for resolving dashboard settings across sources."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

DEFAULT_CACHE_DIR = str(Path.home() / ".evalboard")
DEFAULT_CACHE_CAPACITY = 10


def normalize_api_base_url(raw: str | None) -> str:
    """Normalize user-provided API base URL values."""
    if raw is None:
        return ""

    cleaned = str(raw).strip()
    if not cleaned:
        return ""

    cleaned = cleaned.rstrip("/")
    suffix = "/api"
    if cleaned.lower().endswith(suffix):
        cleaned = cleaned[: -len(suffix)]

    return cleaned.rstrip("/")


def get_nested(mapping: Mapping[str, Any] | None, path: tuple[str, ...]) -> Any:
    """Safely fetch a nested mapping value for a tuple path."""
    current: Any = mapping
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _clean_candidate(value: Any) -> str:
    if value is None:
        return ""
    out = str(value).strip()
    return out


def _resolve_value(candidates: list[tuple[str, Any]]) -> tuple[str, str]:
    for source, raw in candidates:
        value = _clean_candidate(raw)
        if value:
            return value, source
    return "", "missing"


def _parse_capacity(raw: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_CACHE_CAPACITY
    return value if value >= 1 else DEFAULT_CACHE_CAPACITY


def resolve_app_config(
    session: Mapping[str, Any] | None,
    secrets: Mapping[str, Any] | None,
    env: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Resolve API URL, cache location and evaluator version from session, secrets, and environment."""
    session_map = session if isinstance(session, Mapping) else {}
    secrets_map = secrets if isinstance(secrets, Mapping) else {}
    env_map = env if isinstance(env, Mapping) else {}

    api_url_raw, api_url_source = _resolve_value(
        [
            ("session", session_map.get("api_base_url")),
            ("secrets", secrets_map.get("EVALBOARD_API_URL")),
            ("secrets", get_nested(secrets_map, ("evalboard", "api_url"))),
            ("env", env_map.get("EVALBOARD_API_URL")),
        ]
    )
    cache_dir, cache_dir_source = _resolve_value(
        [
            ("session", session_map.get("cache_dir")),
            ("secrets", secrets_map.get("EVALBOARD_CACHE_DIR")),
            ("secrets", get_nested(secrets_map, ("evalboard", "cache_dir"))),
            ("env", env_map.get("EVALBOARD_CACHE_DIR")),
        ]
    )
    capacity_raw, capacity_source = _resolve_value(
        [
            ("session", session_map.get("cache_capacity")),
            ("secrets", secrets_map.get("EVALBOARD_CACHE_CAPACITY")),
            ("secrets", get_nested(secrets_map, ("evalboard", "cache_capacity"))),
            ("env", env_map.get("EVALBOARD_CACHE_CAPACITY")),
        ]
    )
    evaluator_version, version_source = _resolve_value(
        [
            ("session", session_map.get("evaluator_version")),
            ("secrets", secrets_map.get("EVALBOARD_EVALUATOR_VERSION")),
            ("secrets", get_nested(secrets_map, ("evalboard", "evaluator_version"))),
            ("env", env_map.get("EVALBOARD_EVALUATOR_VERSION")),
        ]
    )

    return {
        "api_base_url": normalize_api_base_url(api_url_raw),
        "cache_dir": cache_dir or DEFAULT_CACHE_DIR,
        "cache_capacity": _parse_capacity(capacity_raw) if capacity_raw else DEFAULT_CACHE_CAPACITY,
        "evaluator_version": evaluator_version or None,
        "sources": {
            "api_base_url": api_url_source,
            "cache_dir": cache_dir_source if cache_dir else "default",
            "cache_capacity": capacity_source if capacity_raw else "default",
            "evaluator_version": version_source,
        },
    }
