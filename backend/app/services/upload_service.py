"""
Upload orchestration for game builds.

Two ways in: small archives are posted to the API and written to storage by
the server; large archives go straight to storage through a signed URL and the
client then calls `complete_upload`. Both end in the same completion step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from app.core import rbac
from app.core.config import Settings
from app.core.errors import (
    DuplicateVersionError,
    ExtractionError,
    Forbidden,
    InvalidInput,
    NotFound,
    PayloadTooLarge,
)
from app.models.game import Game
from app.models.game_version import GameVersion, VersionStatus
from app.models.user import User
from app.repositories.game_repository import ById, BySlug, GameRef, parse_game_ref
from app.repositories.registry import RepositoryRegistry
from app.services.audit_service import enqueue_version_records
from app.services.side_effects import SideEffectOutcome, SideEffectQueue
from app.services.storage import ExtractionResult, StorageGateway
from app.services.storage_paths import generate_storage_path, object_key
from app.services.transitions import TransitionGuard, transition_guard
from app.services.versioning import is_valid_game_slug, is_valid_semver

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPE = "application/zip"


@dataclass
class UploadSlot:
    upload_url: str
    storage_path: str
    file_name: str
    object_key: str
    expires_at: datetime
    game_created: bool = False


@dataclass
class UploadOutcome:
    game: Game
    version: GameVersion
    created: bool
    extraction: ExtractionResult
    stale_files_removed: int = 0
    side_effects: list[SideEffectOutcome] = field(default_factory=list)


class UploadService:
    def __init__(
        self,
        repos: RepositoryRegistry,
        gateway: StorageGateway,
        settings: Settings,
        guard: TransitionGuard = transition_guard,
    ):
        self.repos = repos
        self.gateway = gateway
        self.settings = settings
        self.guard = guard

    def _check_request(self, actor: User, version: str, file_name: str) -> None:
        if not rbac.can_upload(actor.roles):
            raise Forbidden("Permission denied")
        if not is_valid_semver(version):
            raise InvalidInput("Invalid version format. Use SemVer (X.Y.Z)")
        if not file_name or not file_name.lower().endswith(".zip") or "/" in file_name:
            raise InvalidInput("Only ZIP files are allowed")

    def _check_owner(self, game: Game, actor: User) -> None:
        if game.owner_id != actor.id and not rbac.is_admin(actor.roles):
            raise Forbidden("You can only upload to your own games")

    def request_upload_slot(
        self,
        actor: User,
        ref: GameRef | str,
        version: str,
        file_name: str,
        *,
        title: str | None = None,
    ) -> UploadSlot:
        """
        Issue a signed write URL for `games/<slug>/<version>/<file_name>`.

        When `title` is given and the slug does not exist yet, the game row is
        created here; a failed first extraction later removes it again.
        """
        self._check_request(actor, version, file_name)
        if isinstance(ref, str):
            ref = parse_game_ref(ref)

        game = self.repos.games.find(ref)
        game_created = False
        if game is None:
            if not (title and isinstance(ref, BySlug)):
                raise NotFound("Game not found")
            if not is_valid_game_slug(ref.slug):
                raise InvalidInput("Game ID must look like com.iruka.<kebab-case-name>")
            game = self.repos.games.create(game_id=ref.slug, title=title, owner_id=actor.id)
            game_created = True
            logger.info("Created game %s ahead of first upload", ref.slug)
        self._check_owner(game, actor)

        storage_path = generate_storage_path(game.game_id, version)
        signed = self.gateway.store.generate_signed_upload_url(
            object_key(storage_path, file_name),
            content_type=ZIP_CONTENT_TYPE,
            expires_in=self.settings.SIGNED_URL_EXPIRES_SECONDS,
        )
        return UploadSlot(
            upload_url=signed.url,
            storage_path=storage_path,
            file_name=file_name,
            object_key=signed.object_key,
            expires_at=signed.expires_at,
            game_created=game_created,
        )

    def upload_small(
        self, actor: User, ref: GameRef | str, version: str, file_name: str, data: bytes
    ) -> UploadOutcome:
        self._check_request(actor, version, file_name)
        if len(data) >= self.settings.SMALL_UPLOAD_MAX_BYTES:
            raise PayloadTooLarge(
                "File too large for direct upload; request a signed upload URL instead"
            )
        game = self.repos.games.resolve(ref)
        self._check_owner(game, actor)

        storage_path = generate_storage_path(game.game_id, version)
        self.gateway.put_archive(storage_path, file_name, data)
        return self.complete_upload(actor, ById(game.id), version, storage_path, file_name, len(data))

    def complete_upload(
        self,
        actor: User,
        ref: GameRef | str,
        version: str,
        storage_path: str,
        file_name: str,
        file_size: int,
        *,
        release_note: str | None = None,
    ) -> UploadOutcome:
        self._check_request(actor, version, file_name)
        if file_size <= 0:
            raise InvalidInput("file_size must be positive")
        if file_size > self.settings.MAX_UPLOAD_BYTES:
            raise PayloadTooLarge(
                f"File too large. Max size is {self.settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
            )

        game = self.repos.games.resolve(ref)
        self._check_owner(game, actor)

        expected_path = generate_storage_path(game.game_id, version)
        if storage_path.rstrip("/") != expected_path:
            raise InvalidInput(f"storage_path must be {expected_path}")

        existing = self.repos.versions.find_by_version(game.id, version)
        if existing is not None:
            self.guard.check(existing.status, "re_upload")
        is_first_version = self.repos.versions.count_for_game(game.id) == 0

        previous_objects = self.gateway.list_files(expected_path) if existing else []
        game_pk, game_slug = game.id, game.game_id

        logger.info("Extracting %s/%s for %s", expected_path, file_name, game_slug)
        try:
            extraction = self.gateway.extract_zip(expected_path, file_name)
        except ExtractionError as exc:
            logger.error("ZIP extraction failed for %s %s: %s", game_slug, version, exc.detail)
            if is_first_version:
                self._rollback_game(game_pk)
            raise ExtractionError(f"Extract ZIP thất bại: {exc.detail}") from exc

        created = False
        if existing is None:
            try:
                row = self.repos.versions.create(
                    game_id=game_pk,
                    version=version,
                    storage_path=expected_path,
                    build_size=file_size,
                    status=VersionStatus.draft,
                    submitted_by=actor.id,
                    entry_url=extraction.url,
                    entry_file=extraction.entry_file,
                    files_count=len(extraction.files),
                )
                created = True
            except DuplicateVersionError:
                existing = self.repos.versions.find_by_version(game_pk, version)
                if existing is None:
                    raise

        if created:
            self.repos.games.update_latest_version(game_pk, row.id)
            old_status = None
            label = f"Tạo phiên bản {version}"
        else:
            old_status = existing.status
            row = self.repos.versions.patch_build(
                existing.id,
                file_size,
                actor.id,
                entry_url=extraction.url,
                entry_file=extraction.entry_file,
                files_count=len(extraction.files),
            )
            target = self.guard.check(old_status, "re_upload")
            if old_status != target:
                row = self.repos.versions.update_status(existing.id, target)
            label = f"Cập nhật code phiên bản {version}"

        if release_note is not None:
            row = self.repos.versions.update_release_note(row.id, release_note)

        stale_removed = self._remove_stale(expected_path, file_name, previous_objects, extraction)

        game = self.repos.games.find_by_id(game_pk)
        queue = SideEffectQueue(self.repos.db)
        enqueue_version_records(
            queue,
            self.repos.audit,
            actor=actor,
            game=game,
            version=row,
            action="GAME_UPLOAD",
            history_label=label,
            old_status=old_status,
            new_status=row.status,
            details={"buildSize": file_size, "filesCount": len(extraction.files)},
        )
        return UploadOutcome(
            game=game,
            version=row,
            created=created,
            extraction=extraction,
            stale_files_removed=stale_removed,
            side_effects=queue.flush(),
        )

    def _rollback_game(self, game_pk) -> None:
        logger.warning("Rolling back game %s after failed first upload", game_pk)
        try:
            self.repos.games.delete(game_pk)
        except Exception:  # noqa: BLE001
            self.repos.db.rollback()
            logger.exception("Rollback of game %s failed", game_pk)

    def _remove_stale(
        self,
        storage_path: str,
        file_name: str,
        previous_objects: list[str],
        extraction: ExtractionResult,
    ) -> int:
        if not previous_objects:
            return 0
        keep = {object_key(storage_path, f) for f in extraction.files}
        keep.add(object_key(storage_path, file_name))
        stale = [key for key in previous_objects if key not in keep]
        if not stale:
            return 0
        result = self.gateway.delete_files(stale)
        logger.info("Removed %d stale files under %s", result.deleted, storage_path)
        return result.deleted
