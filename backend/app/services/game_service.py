from __future__ import annotations

import logging
from typing import Any

from app.core import rbac
from app.core.errors import Forbidden, InvalidInput, NotFound
from app.models.audit import AuditLog, GameHistoryEntry
from app.models.game import Game
from app.models.game_version import GameVersion
from app.models.user import User
from app.repositories.audit_repository import AuditLogFilter
from app.repositories.game_repository import GameRef
from app.repositories.registry import RepositoryRegistry
from app.services.audit_service import enqueue_game_records
from app.services.side_effects import SideEffectOutcome, SideEffectQueue
from app.services.versioning import is_valid_game_slug

logger = logging.getLogger(__name__)


class GameService:
    def __init__(self, repos: RepositoryRegistry):
        self.repos = repos

    def create_game(
        self, actor: User, *, game_id: str, title: str, **fields: Any
    ) -> tuple[Game, list[SideEffectOutcome]]:
        if not rbac.has_permission(actor.roles, "games:create"):
            raise Forbidden("You do not have permission to create games")
        if not is_valid_game_slug(game_id):
            raise InvalidInput("Game ID must look like com.iruka.<kebab-case-name>")
        if not title or not title.strip():
            raise InvalidInput("Title is required")

        game = self.repos.games.create(
            game_id=game_id, title=title.strip(), owner_id=actor.id, **fields
        )
        logger.info("Game %s created by %s", game.game_id, actor.email)

        queue = SideEffectQueue(self.repos.db)
        enqueue_game_records(
            queue,
            self.repos.audit,
            actor=actor,
            game=game,
            action="CREATE_GAME",
            history_label=f"Tạo game {game.title}",
            details={"title": game.title},
        )
        return game, queue.flush()

    def check_duplicate(self, game_id: str) -> bool:
        return self.repos.games.find_by_game_id(game_id, include_deleted=True) is not None

    def get_game(self, ref: GameRef | str, *, include_deleted: bool = False) -> Game:
        return self.repos.games.resolve(ref, include_deleted=include_deleted)

    def list_games(
        self, actor: User, *, mine: bool = False, include_deleted: bool = False, limit: int = 50, offset: int = 0
    ) -> list[Game]:
        if include_deleted and not rbac.has_permission(actor.roles, "games:restore"):
            raise Forbidden("You do not have permission to view deleted games")
        # Developers only see their own games unless they also hold a reviewer role.
        only_own = mine or rbac.normalize_roles(actor.roles) == {"dev"}
        return self.repos.games.list_games(
            owner_id=actor.id if only_own else None,
            include_deleted=include_deleted,
            limit=limit,
            offset=offset,
        )

    def list_versions(self, ref: GameRef | str) -> list[GameVersion]:
        game = self.repos.games.resolve(ref)
        return self.repos.versions.list_for_game(game.id)

    def get_version(self, ref: GameRef | str, version: str) -> GameVersion:
        game = self.repos.games.resolve(ref)
        row = self.repos.versions.find_by_version(game.id, version)
        if row is None:
            raise NotFound("Version not found")
        return row

    def history(self, ref: GameRef | str) -> list[GameHistoryEntry]:
        game = self.repos.games.resolve(ref, include_deleted=True)
        return self.repos.audit.list_history(game.id)

    def audit_logs(
        self, actor: User, filters: AuditLogFilter, *, limit: int = 50, offset: int = 0
    ) -> list[AuditLog]:
        if not rbac.has_permission(actor.roles, "system:audit_view"):
            raise Forbidden("You do not have permission to view audit logs")
        return self.repos.audit.list_audit(filters, limit=limit, offset=offset)

    def soft_delete(
        self, ref: GameRef | str, actor: User, reason: str | None = None
    ) -> tuple[Game, list[SideEffectOutcome]]:
        if not rbac.has_permission(actor.roles, "games:delete_soft"):
            raise Forbidden("You do not have permission to delete games")
        game = self.repos.games.resolve(ref)
        game = self.repos.games.soft_delete(
            game.id, deleted_by=actor.id, reason=reason or "admin_soft_delete"
        )
        logger.info("Game %s soft-deleted by %s", game.game_id, actor.email)

        queue = SideEffectQueue(self.repos.db)
        enqueue_game_records(
            queue,
            self.repos.audit,
            actor=actor,
            game=game,
            action="GAME_SOFT_DELETE",
            history_label="Đã xóa game",
            details={"reason": game.delete_reason},
        )
        return game, queue.flush()

    def restore(self, ref: GameRef | str, actor: User) -> tuple[Game, list[SideEffectOutcome]]:
        if not rbac.has_permission(actor.roles, "games:restore"):
            raise Forbidden("You do not have permission to restore games")
        game = self.repos.games.resolve(ref, include_deleted=True)
        if not game.is_deleted:
            raise InvalidInput("Game is not deleted")
        game = self.repos.games.restore(game.id)

        queue = SideEffectQueue(self.repos.db)
        enqueue_game_records(
            queue,
            self.repos.audit,
            actor=actor,
            game=game,
            action="GAME_RESTORE",
            history_label="Đã khôi phục game",
        )
        return game, queue.flush()
