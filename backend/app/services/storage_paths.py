"""
Object key conventions for game builds.

Every build lives under `games/<slug>/<version>/`; the public play URL is
derived from that prefix, so the layout must not change.
"""

from __future__ import annotations

import re

GAMES_PREFIX = "games"

_UNSAFE_CHARS = re.compile(r'[<>:"|?*]')
_STORAGE_PATH_RE = re.compile(r"^games/([^/]+)/([^/]+)/?$")


def _sanitize_component(component: str) -> str:
    cleaned = component.replace("..", "")
    cleaned = cleaned.replace("/", "").replace("\\", "")
    return _UNSAFE_CHARS.sub("", cleaned).strip()


def generate_storage_path(slug: str, version: str) -> str:
    if not slug or not slug.strip():
        raise ValueError("slug is required and cannot be empty")
    if not version or not version.strip():
        raise ValueError("version is required and cannot be empty")
    return f"{GAMES_PREFIX}/{_sanitize_component(slug)}/{_sanitize_component(version)}"


def validate_storage_path(path: str | None) -> bool:
    return bool(path) and _STORAGE_PATH_RE.match(path) is not None


def parse_storage_path(path: str) -> tuple[str, str] | None:
    match = _STORAGE_PATH_RE.match(path or "")
    if not match:
        return None
    return match.group(1), match.group(2)


def object_key(storage_path: str, relative_path: str) -> str:
    return f"{storage_path.rstrip('/')}/{relative_path.lstrip('/')}"


def construct_file_url(base_url: str, storage_path: str, relative_path: str) -> str:
    if not storage_path or not relative_path:
        raise ValueError("storage_path and relative_path are required")
    return f"{base_url.rstrip('/')}/{object_key(storage_path, relative_path)}"
