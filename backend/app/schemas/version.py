import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from app.models.game_version import VersionStatus


class GameVersionResponse(BaseModel):
    id: uuid.UUID
    game_id: uuid.UUID
    version: str
    storage_path: str
    entry_file: str
    entry_url: str | None = None
    build_size: int
    files_count: int | None = None
    status: VersionStatus
    self_qa_checklist: dict[str, Any] | None = None
    release_note: str | None = None
    submitted_by: uuid.UUID
    submitted_at: datetime | None = None
    last_code_update_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
