from __future__ import annotations

from sqlalchemy.orm import Session

from app.repositories.audit_repository import AuditRepository
from app.repositories.game_repository import GameRepository
from app.repositories.version_repository import VersionRepository


class RepositoryRegistry:
    """Repositories bound to one request's session."""

    def __init__(self, db: Session):
        self.db = db
        self.games = GameRepository(db)
        self.versions = VersionRepository(db)
        self.audit = AuditRepository(db)
