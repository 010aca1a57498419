from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.clock import utcnow
from app.core.errors import DuplicateGameError, NotFound
from app.models.game import Game
from app.repositories.base import Repository

UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "team_id",
        "subject",
        "grade",
        "unit",
        "game_type",
        "priority",
        "level",
        "tags",
        "skills",
        "themes",
        "thumbnail_desktop",
        "thumbnail_mobile",
        "extra_metadata",
        "disabled",
        "rollout_percentage",
    }
)


@dataclass(frozen=True)
class ById:
    id: uuid.UUID


@dataclass(frozen=True)
class BySlug:
    slug: str


GameRef = Union[ById, BySlug]


def parse_game_ref(raw: str) -> GameRef:
    """A value that parses as a UUID is an id; anything else is a slug."""
    try:
        return ById(uuid.UUID(str(raw)))
    except ValueError:
        return BySlug(str(raw))


class GameRepository(Repository):
    def create(self, *, game_id: str, title: str, owner_id: uuid.UUID, **fields: Any) -> Game:
        if self._find_any_by_slug(game_id) is not None:
            raise DuplicateGameError(f"Game ID {game_id} đã tồn tại")

        extra = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
        row = Game(
            game_id=game_id,
            title=title,
            owner_id=owner_id,
            disabled=extra.pop("disabled", False),
            rollout_percentage=extra.pop("rollout_percentage", 100),
            is_deleted=False,
            **extra,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateGameError(f"Game ID {game_id} đã tồn tại") from exc
        self.db.refresh(row)
        return row

    def _find_any_by_slug(self, slug: str) -> Game | None:
        return self.db.execute(select(Game).where(Game.game_id == slug)).scalar_one_or_none()

    def find_by_id(self, game_pk: uuid.UUID, *, include_deleted: bool = False) -> Game | None:
        row = self.db.get(Game, game_pk)
        if row is None or (row.is_deleted and not include_deleted):
            return None
        return row

    def find_by_game_id(self, slug: str, *, include_deleted: bool = False) -> Game | None:
        row = self._find_any_by_slug(slug)
        if row is None or (row.is_deleted and not include_deleted):
            return None
        return row

    def find(self, ref: GameRef, *, include_deleted: bool = False) -> Game | None:
        if isinstance(ref, ById):
            game = self.find_by_id(ref.id, include_deleted=include_deleted)
            if game is not None:
                return game
            return self.find_by_game_id(str(ref.id), include_deleted=include_deleted)
        return self.find_by_game_id(ref.slug, include_deleted=include_deleted)

    def resolve(self, ref: GameRef | str, *, include_deleted: bool = False) -> Game:
        if isinstance(ref, str):
            ref = parse_game_ref(ref)
        game = self.find(ref, include_deleted=include_deleted)
        if game is None:
            raise NotFound("Game not found")
        return game

    def list_games(
        self,
        *,
        owner_id: uuid.UUID | None = None,
        include_deleted: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Game]:
        stmt = select(Game)
        if owner_id is not None:
            stmt = stmt.where(Game.owner_id == owner_id)
        if not include_deleted:
            stmt = stmt.where(Game.is_deleted.is_(False))
        stmt = stmt.order_by(Game.created_at.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def update(self, game_pk: uuid.UUID, **fields: Any) -> Game | None:
        row = self.find_by_id(game_pk)
        if row is None:
            return None
        for key, value in fields.items():
            if key not in UPDATABLE_FIELDS:
                raise ValueError(f"Field {key!r} cannot be updated")
            setattr(row, key, value)
        self._commit("Game")
        return row

    def update_latest_version(self, game_pk: uuid.UUID, version_id: uuid.UUID) -> Game | None:
        row = self.find_by_id(game_pk)
        if row is None:
            return None
        row.latest_version_id = version_id
        self._commit("Game")
        return row

    def update_live_version(
        self,
        game_pk: uuid.UUID,
        version_id: uuid.UUID,
        published_at: datetime | None = None,
    ) -> Game | None:
        row = self.find_by_id(game_pk)
        if row is None:
            return None
        row.live_version_id = version_id
        row.published_at = published_at or utcnow()
        self._commit("Game")
        return row

    def soft_delete(
        self, game_pk: uuid.UUID, *, deleted_by: uuid.UUID, reason: str = "admin_soft_delete"
    ) -> Game | None:
        row = self.find_by_id(game_pk)
        if row is None:
            return None
        row.is_deleted = True
        row.deleted_at = utcnow()
        row.deleted_by = deleted_by
        row.delete_reason = reason
        self._commit("Game")
        return row

    def restore(self, game_pk: uuid.UUID) -> Game | None:
        row = self.find_by_id(game_pk, include_deleted=True)
        if row is None:
            return None
        row.is_deleted = False
        row.deleted_at = None
        row.deleted_by = None
        row.delete_reason = None
        self._commit("Game")
        return row

    def delete(self, game_pk: uuid.UUID) -> bool:
        """Hard delete. Only the upload rollback path uses this."""
        row = self.db.get(Game, game_pk)
        if row is None:
            return False
        self.db.delete(row)
        self._commit("Game")
        return True
