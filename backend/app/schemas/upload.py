import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.common import SideEffectResponse
from app.schemas.version import GameVersionResponse


class UploadUrlRequest(BaseModel):
    game_id: str = Field(description="Game surrogate id or slug")
    version: str
    file_name: str
    title: str | None = Field(
        default=None, description="Creates the game when the slug does not exist yet"
    )


class UploadUrlResponse(BaseModel):
    upload_url: str
    storage_path: str
    file_name: str
    object_key: str
    expires_at: datetime
    game_created: bool = False


class UploadCompleteRequest(BaseModel):
    game_id: str
    version: str
    storage_path: str
    file_name: str
    file_size: int
    release_note: str | None = None


class UploadCompleteResponse(BaseModel):
    game_id: uuid.UUID
    slug: str
    created: bool
    entry_url: str
    files: list[str]
    stale_files_removed: int = 0
    version: GameVersionResponse
    side_effects: list[SideEffectResponse] = []


class StorageUploadResponse(BaseModel):
    object_key: str
    size: int
