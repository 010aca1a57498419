"""
Guarded status transitions for a game's latest version.

Every handler follows the same order: resolve game and version, ask the
transition guard, write the new status, then queue audit and history
records. The status write is committed before the records are attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from app.core import rbac
from app.core.errors import Forbidden, InvalidInput, InvalidState, NotFound
from app.models.game import Game
from app.models.game_version import SELF_QA_ITEMS, GameVersion, VersionStatus
from app.models.user import User
from app.repositories.game_repository import GameRef
from app.repositories.registry import RepositoryRegistry
from app.services.audit_service import enqueue_version_records
from app.services.side_effects import SideEffectOutcome, SideEffectQueue
from app.services.transitions import TransitionGuard, transition_guard

logger = logging.getLogger(__name__)

DECISIONS = {"approve": "GAME_APPROVE", "reject": "GAME_REJECT"}
QC_RESULTS = {"pass": ("qc_pass", "GAME_QC_PASS"), "fail": ("qc_fail", "GAME_QC_FAIL")}


@dataclass
class TransitionResult:
    game: Game
    version: GameVersion
    previous_status: VersionStatus
    status: VersionStatus
    side_effects: list[SideEffectOutcome] = field(default_factory=list)


class LifecycleService:
    def __init__(self, repos: RepositoryRegistry, guard: TransitionGuard = transition_guard):
        self.repos = repos
        self.guard = guard

    def _latest_version(self, game: Game, purpose: str) -> GameVersion:
        if not game.latest_version_id:
            raise InvalidState(f"Game has no version to {purpose}")
        version = self.repos.versions.find_by_id(game.latest_version_id)
        if version is None:
            raise NotFound("Version not found")
        return version

    def _require_owner_or_admin(self, game: Game, actor: User, message: str) -> None:
        if game.owner_id != actor.id and not rbac.is_admin(actor.roles):
            raise Forbidden(message)

    def _apply(
        self,
        *,
        game: Game,
        version: GameVersion,
        actor: User,
        action: str,
        audit_action: str,
        history_label: str,
        details: dict[str, Any] | None = None,
        submitted_by=None,
    ) -> TransitionResult:
        previous = version.status
        target = self.guard.check(previous, action)

        updated = self.repos.versions.update_status(version.id, target, submitted_by=submitted_by)
        if updated is None:
            raise NotFound("Version not found")
        logger.info(
            "Game %s version %s: %s -> %s (%s by %s)",
            game.game_id,
            version.version,
            previous.value,
            target.value,
            action,
            actor.email,
        )

        queue = SideEffectQueue(self.repos.db)
        enqueue_version_records(
            queue,
            self.repos.audit,
            actor=actor,
            game=game,
            version=updated,
            action=audit_action,
            history_label=history_label,
            old_status=previous,
            new_status=target,
            details=details,
        )
        return TransitionResult(
            game=game,
            version=updated,
            previous_status=previous,
            status=target,
            side_effects=queue.flush(),
        )

    def update_self_qa(
        self, ref: GameRef | str, actor: User, checklist: dict[str, Any], note: str | None = None
    ) -> GameVersion:
        game = self.repos.games.resolve(ref)
        self._require_owner_or_admin(game, actor, "You can only update Self-QA for your own games")
        version = self._latest_version(game, "update")
        if version.status not in (VersionStatus.draft, VersionStatus.qc_failed):
            raise InvalidState(
                f"Cannot update Self-QA for version with status: {version.status.value}"
            )

        cleaned: dict[str, Any] = {item: bool(checklist.get(item)) for item in SELF_QA_ITEMS}
        if note:
            cleaned["note"] = note
        updated = self.repos.versions.update_self_qa(version.id, cleaned)

        completed = [item for item in SELF_QA_ITEMS if cleaned[item]]
        queue = SideEffectQueue(self.repos.db)
        queue.enqueue(
            "game_history",
            self.repos.audit.add_history,
            game_id=game.id,
            action=f"Cập nhật Self-QA Checklist: {', '.join(completed) or 'none'}",
            actor=actor,
            details={"versionId": str(version.id), "checklist": cleaned},
        )
        queue.flush()
        return updated

    def submit_for_qc(
        self, ref: GameRef | str, actor: User, version_id=None
    ) -> TransitionResult:
        game = self.repos.games.resolve(ref)
        self._require_owner_or_admin(game, actor, "You can only submit your own games to QC")

        if version_id is not None:
            version = self.repos.versions.find_by_id(version_id)
            if version is None or version.game_id != game.id:
                raise NotFound("Version not found")
        else:
            version = self._latest_version(game, "submit")

        self.guard.check(version.status, "submit")
        if not version.self_qa_complete:
            raise InvalidState("Self-QA checklist must be 100% complete before submitting to QC")

        return self._apply(
            game=game,
            version=version,
            actor=actor,
            action="submit",
            audit_action="GAME_SUBMIT_QC",
            history_label=f"Gửi QC - Version {version.version}",
            submitted_by=actor.id,
        )

    def review_qc(
        self, ref: GameRef | str, actor: User, result: str, notes: str | None = None
    ) -> TransitionResult:
        if not rbac.has_permission(actor.roles, "games:review"):
            raise Forbidden("You do not have permission to review games")
        if result not in QC_RESULTS:
            raise InvalidInput("Invalid QC result")
        action, audit_action = QC_RESULTS[result]

        game = self.repos.games.resolve(ref)
        version = self._latest_version(game, "review")
        label = "QC đạt" if result == "pass" else "QC cần sửa"
        return self._apply(
            game=game,
            version=version,
            actor=actor,
            action=action,
            audit_action=audit_action,
            history_label=f"{label} - Version {version.version}",
            details={"result": result, "notes": notes or ""},
        )

    def decide(
        self, ref: GameRef | str, actor: User, decision: str = "approve", notes: str | None = None
    ) -> TransitionResult:
        if not rbac.has_permission(actor.roles, "games:approve"):
            raise Forbidden("You do not have permission to approve games")
        if decision not in DECISIONS:
            raise InvalidInput("Invalid decision")

        game = self.repos.games.resolve(ref)
        version = self._latest_version(game, "approve")
        label = "Đã duyệt" if decision == "approve" else "Đã từ chối"
        return self._apply(
            game=game,
            version=version,
            actor=actor,
            action=decision,
            audit_action=DECISIONS[decision],
            history_label=f"{label} phiên bản {version.version}",
            details={"decision": decision, "notes": notes or "", "reviewedBy": actor.email},
        )

    def publish(self, ref: GameRef | str, actor: User) -> TransitionResult:
        if not rbac.has_permission(actor.roles, "games:publish"):
            raise Forbidden("You do not have permission to publish games")

        game = self.repos.games.resolve(ref)
        version = self._latest_version(game, "publish")
        previous_live_id = game.live_version_id

        result = self._apply(
            game=game,
            version=version,
            actor=actor,
            action="publish",
            audit_action="GAME_PUBLISH",
            history_label=f"Đã xuất bản phiên bản {version.version}",
            details={"publishedBy": actor.email},
        )
        # The version is published before the live pointer moves, so the
        # pointer never references a non-published version.
        game = self.repos.games.update_live_version(game.id, version.id)
        if game is None:
            raise NotFound("Game not found")
        result.game = game

        if previous_live_id and previous_live_id != version.id:
            result.side_effects.extend(self._archive_previous(game, previous_live_id, actor))
        return result

    def _archive_previous(self, game: Game, version_id, actor: User) -> list[SideEffectOutcome]:
        previous = self.repos.versions.find_by_id(version_id)
        if previous is None or not self.guard.is_legal(previous.status, "archive"):
            return []
        archived = self._apply(
            game=game,
            version=previous,
            actor=actor,
            action="archive",
            audit_action="GAME_ARCHIVE",
            history_label=f"Lưu trữ phiên bản {previous.version}",
            details={"reason": "superseded"},
        )
        return archived.side_effects
