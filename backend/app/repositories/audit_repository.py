from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select

from app.models.audit import AuditLog, GameHistoryEntry
from app.models.user import User
from app.repositories.base import Repository


@dataclass
class AuditLogFilter:
    user_id: uuid.UUID | None = None
    action: str | None = None
    target_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class AuditRepository(Repository):
    def add_audit(
        self,
        *,
        actor: User,
        action: str,
        target_entity: str,
        target_id: str,
        details: dict[str, Any] | None = None,
        changes: list[dict[str, Any]] | None = None,
    ) -> AuditLog:
        row = AuditLog(
            actor_id=actor.id,
            actor_email=actor.email,
            actor_role=actor.primary_role,
            action=action,
            target_entity=target_entity,
            target_id=target_id,
            details=details,
            changes=changes,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def add_history(
        self,
        *,
        game_id: uuid.UUID,
        action: str,
        actor: User,
        old_status: str | None = None,
        new_status: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> GameHistoryEntry:
        row = GameHistoryEntry(
            game_id=game_id,
            action=action,
            actor_id=actor.id,
            actor_email=actor.email,
            old_status=old_status,
            new_status=new_status,
            details=details,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def list_history(self, game_id: uuid.UUID) -> list[GameHistoryEntry]:
        stmt = (
            select(GameHistoryEntry)
            .where(GameHistoryEntry.game_id == game_id)
            .order_by(GameHistoryEntry.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def list_audit(
        self, filters: AuditLogFilter | None = None, *, limit: int = 50, offset: int = 0
    ) -> list[AuditLog]:
        filters = filters or AuditLogFilter()
        stmt = select(AuditLog)
        if filters.user_id:
            stmt = stmt.where(AuditLog.actor_id == filters.user_id)
        if filters.action:
            stmt = stmt.where(AuditLog.action == filters.action)
        if filters.target_id:
            stmt = stmt.where(AuditLog.target_id == filters.target_id)
        if filters.start_date:
            stmt = stmt.where(AuditLog.created_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(AuditLog.created_at <= filters.end_date)
        stmt = stmt.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars())
