from __future__ import annotations

from collections.abc import Iterable

ROLES = ("dev", "qc", "cto", "ceo", "admin")

# Roles allowed to push builds to a game they own (admin may push to any game).
UPLOAD_ROLES = frozenset({"dev", "admin"})

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "dev": frozenset({"games:view", "games:create", "games:update", "games:submit"}),
    "qc": frozenset({"games:view", "games:review"}),
    "cto": frozenset({"games:view", "games:approve", "games:archive", "system:audit_view"}),
    "ceo": frozenset({"games:view", "games:approve"}),
    "admin": frozenset(
        {
            "games:view",
            "games:create",
            "games:update",
            "games:submit",
            "games:review",
            "games:approve",
            "games:publish",
            "games:archive",
            "games:delete_soft",
            "games:restore",
            "system:audit_view",
            "system:admin",
        }
    ),
}


def normalize_roles(roles: Iterable[str] | None) -> set[str]:
    return {r.casefold() for r in roles or ()}


def permissions_for(roles: Iterable[str] | None) -> set[str]:
    granted: set[str] = set()
    for role in normalize_roles(roles):
        granted |= ROLE_PERMISSIONS.get(role, frozenset())
    return granted


def has_permission(roles: Iterable[str] | None, permission: str) -> bool:
    return permission in permissions_for(roles)


def is_admin(roles: Iterable[str] | None) -> bool:
    return "admin" in normalize_roles(roles)


def can_upload(roles: Iterable[str] | None) -> bool:
    return bool(normalize_roles(roles) & UPLOAD_ROLES)
