import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import SideEffectResponse


class GameCreate(BaseModel):
    game_id: str = Field(min_length=1, max_length=128)
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    team_id: str | None = None
    subject: str | None = None
    grade: str | None = None
    unit: str | None = None
    game_type: str | None = None
    priority: str | None = None
    level: str | None = None
    tags: list[str] = []
    skills: list[str] = []
    themes: list[str] = []


class GameResponse(BaseModel):
    id: uuid.UUID
    game_id: str
    title: str
    description: str | None = None
    owner_id: uuid.UUID
    team_id: str | None = None
    latest_version_id: uuid.UUID | None = None
    live_version_id: uuid.UUID | None = None
    subject: str | None = None
    grade: str | None = None
    unit: str | None = None
    game_type: str | None = None
    priority: str | None = None
    level: str | None = None
    tags: list[str] = []
    skills: list[str] = []
    themes: list[str] = []
    thumbnail_desktop: str | None = None
    thumbnail_mobile: str | None = None
    extra_metadata: dict[str, Any] = {}
    disabled: bool
    rollout_percentage: int
    published_at: datetime | None = None
    is_deleted: bool
    deleted_at: datetime | None = None
    delete_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class GameMutationResponse(BaseModel):
    game: GameResponse
    side_effects: list[SideEffectResponse] = []


class GameSoftDelete(BaseModel):
    reason: str | None = None


class DuplicateCheckResponse(BaseModel):
    game_id: str
    exists: bool


class GameHistoryResponse(BaseModel):
    id: uuid.UUID
    game_id: uuid.UUID
    action: str
    actor_id: uuid.UUID
    actor_email: str
    old_status: str | None = None
    new_status: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
