import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.core.db import Base


class VersionStatus(str, enum.Enum):
    draft = "draft"
    uploaded = "uploaded"
    qc_processing = "qc_processing"
    qc_passed = "qc_passed"
    qc_failed = "qc_failed"
    approved = "approved"
    published = "published"
    archived = "archived"


DEFAULT_ENTRY_FILE = "index.html"

SELF_QA_ITEMS = ("testedDevices", "testedAudio", "gameplayComplete", "contentVerified")


class GameVersion(Base):
    __tablename__ = "game_versions"
    __table_args__ = (
        UniqueConstraint("game_id", "version", name="game_versions_game_id_version_key"),
        Index("idx_game_versions_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    game_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("games.id", name="game_versions_game_id_fkey", ondelete="CASCADE"),
        nullable=False,
    )
    version: Mapped[str] = mapped_column(String(32), nullable=False)

    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    entry_file: Mapped[str] = mapped_column(String(255), default=DEFAULT_ENTRY_FILE, nullable=False)
    entry_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    build_size: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    files_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[VersionStatus] = mapped_column(
        Enum(
            VersionStatus,
            name="version_status",
            native_enum=False,
            length=32,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=VersionStatus.draft,
        nullable=False,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    self_qa_checklist: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    release_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_code_update_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_code_update_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __mapper_args__ = {"version_id_col": row_version}

    @property
    def self_qa_complete(self) -> bool:
        checklist = self.self_qa_checklist or {}
        return all(checklist.get(item) is True for item in SELF_QA_ITEMS)
