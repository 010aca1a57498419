from __future__ import annotations

import re

SEMVER_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
GAME_SLUG_RE = re.compile(r"^com\.iruka\.[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_valid_semver(version: str | None) -> bool:
    return bool(version) and SEMVER_RE.match(version) is not None


def parse_semver(version: str) -> tuple[int, int, int] | None:
    match = SEMVER_RE.match(version or "")
    if not match:
        return None
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def compare_semver(v1: str, v2: str) -> int:
    p1 = parse_semver(v1)
    p2 = parse_semver(v2)
    if p1 is None or p2 is None:
        raise ValueError(f"Invalid SemVer format: {v1!r} / {v2!r}")
    return (p1 > p2) - (p1 < p2)


def increment_patch(version: str) -> str:
    parsed = parse_semver(version)
    if parsed is None:
        raise ValueError(f"Invalid SemVer format: {version}")
    major, minor, patch = parsed
    return f"{major}.{minor}.{patch + 1}"


def is_valid_game_slug(slug: str | None) -> bool:
    return bool(slug) and GAME_SLUG_RE.match(slug) is not None
