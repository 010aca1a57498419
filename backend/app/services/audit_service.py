from __future__ import annotations

from typing import Any

from app.models.game import Game
from app.models.game_version import GameVersion
from app.models.user import User
from app.repositories.audit_repository import AuditRepository
from app.services.side_effects import SideEffectQueue

TARGET_GAME = "GAME"
TARGET_GAME_VERSION = "GAME_VERSION"


def _status_value(status: Any) -> str | None:
    if status is None:
        return None
    return getattr(status, "value", status)


def enqueue_version_records(
    queue: SideEffectQueue,
    audit: AuditRepository,
    *,
    actor: User,
    game: Game,
    version: GameVersion,
    action: str,
    history_label: str,
    old_status: Any = None,
    new_status: Any = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Queue the audit-log row and the game history line for one version event."""
    metadata = {
        "gameId": game.game_id,
        "version": version.version,
        "previousStatus": _status_value(old_status),
        "newStatus": _status_value(new_status),
        "versionId": str(version.id),
    }
    metadata.update(details or {})

    queue.enqueue(
        "audit_log",
        audit.add_audit,
        actor=actor,
        action=action,
        target_entity=TARGET_GAME_VERSION,
        target_id=str(version.id),
        details=metadata,
    )
    queue.enqueue(
        "game_history",
        audit.add_history,
        game_id=game.id,
        action=history_label,
        actor=actor,
        old_status=_status_value(old_status),
        new_status=_status_value(new_status),
        details=metadata,
    )


def enqueue_game_records(
    queue: SideEffectQueue,
    audit: AuditRepository,
    *,
    actor: User,
    game: Game,
    action: str,
    history_label: str,
    details: dict[str, Any] | None = None,
) -> None:
    metadata = {"gameId": game.game_id, **(details or {})}
    queue.enqueue(
        "audit_log",
        audit.add_audit,
        actor=actor,
        action=action,
        target_entity=TARGET_GAME,
        target_id=str(game.id),
        details=metadata,
    )
    queue.enqueue(
        "game_history",
        audit.add_history,
        game_id=game.id,
        action=history_label,
        actor=actor,
        details=metadata,
    )
