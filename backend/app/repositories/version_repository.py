"""
Persistence for GameVersion rows.

`update_status` writes whatever it is given: deciding whether a transition is
legal belongs to `app.services.transitions`, one layer up.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.clock import utcnow
from app.core.errors import DuplicateVersionError
from app.models.game_version import DEFAULT_ENTRY_FILE, GameVersion, VersionStatus
from app.repositories.base import Repository


class VersionRepository(Repository):
    def create(
        self,
        *,
        game_id: uuid.UUID,
        version: str,
        storage_path: str,
        submitted_by: uuid.UUID,
        build_size: int,
        status: VersionStatus = VersionStatus.draft,
        entry_file: str = DEFAULT_ENTRY_FILE,
        entry_url: str | None = None,
        files_count: int | None = None,
    ) -> GameVersion:
        if self._find_any(game_id, version) is not None:
            raise DuplicateVersionError(f"Version {version} already exists for this game")

        row = GameVersion(
            game_id=game_id,
            version=version,
            storage_path=storage_path,
            entry_file=entry_file,
            entry_url=entry_url,
            build_size=build_size,
            files_count=files_count,
            status=status,
            submitted_by=submitted_by,
            submitted_at=utcnow(),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost the insert race against a concurrent upload of the same version.
            self.db.rollback()
            raise DuplicateVersionError(f"Version {version} already exists for this game") from exc
        self.db.refresh(row)
        return row

    def _find_any(self, game_id: uuid.UUID, version: str) -> GameVersion | None:
        stmt = select(GameVersion).where(
            GameVersion.game_id == game_id, GameVersion.version == version
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_by_id(self, version_id: uuid.UUID) -> GameVersion | None:
        row = self.db.get(GameVersion, version_id)
        if row is None or row.is_deleted:
            return None
        return row

    def find_by_version(self, game_id: uuid.UUID, version: str) -> GameVersion | None:
        row = self._find_any(game_id, version)
        if row is None or row.is_deleted:
            return None
        return row

    def find_deleted(self, game_id: uuid.UUID) -> list[GameVersion]:
        stmt = (
            select(GameVersion)
            .where(GameVersion.game_id == game_id, GameVersion.is_deleted.is_(True))
            .order_by(GameVersion.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def list_for_game(self, game_id: uuid.UUID) -> list[GameVersion]:
        stmt = (
            select(GameVersion)
            .where(GameVersion.game_id == game_id, GameVersion.is_deleted.is_(False))
            .order_by(GameVersion.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def count_for_game(self, game_id: uuid.UUID) -> int:
        """All versions ever created for the game, soft-deleted ones included."""
        stmt = select(func.count()).select_from(GameVersion).where(GameVersion.game_id == game_id)
        return int(self.db.execute(stmt).scalar_one())

    def update_status(
        self,
        version_id: uuid.UUID,
        new_status: VersionStatus,
        *,
        submitted_by: uuid.UUID | None = None,
    ) -> GameVersion | None:
        row = self.find_by_id(version_id)
        if row is None:
            return None
        row.status = new_status
        if submitted_by is not None:
            row.submitted_by = submitted_by
            row.submitted_at = utcnow()
        self._commit("Game version")
        return row

    def patch_build(
        self,
        version_id: uuid.UUID,
        build_size: int,
        submitted_by: uuid.UUID,
        *,
        entry_url: str | None = None,
        entry_file: str | None = None,
        files_count: int | None = None,
    ) -> GameVersion | None:
        row = self.find_by_id(version_id)
        if row is None:
            return None
        now = utcnow()
        row.build_size = build_size
        row.submitted_by = submitted_by
        row.submitted_at = now
        row.last_code_update_at = now
        row.last_code_update_by = submitted_by
        if entry_url is not None:
            row.entry_url = entry_url
        if entry_file is not None:
            row.entry_file = entry_file
        if files_count is not None:
            row.files_count = files_count
        self._commit("Game version")
        return row

    def update_self_qa(self, version_id: uuid.UUID, checklist: dict[str, Any]) -> GameVersion | None:
        row = self.find_by_id(version_id)
        if row is None:
            return None
        row.self_qa_checklist = dict(checklist)
        self._commit("Game version")
        return row

    def update_release_note(self, version_id: uuid.UUID, note: str | None) -> GameVersion | None:
        row = self.find_by_id(version_id)
        if row is None:
            return None
        row.release_note = note
        self._commit("Game version")
        return row

    def soft_delete(self, version_id: uuid.UUID) -> GameVersion | None:
        row = self.find_by_id(version_id)
        if row is None:
            return None
        row.is_deleted = True
        self._commit("Game version")
        return row
