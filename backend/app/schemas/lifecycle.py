from typing import Literal

from pydantic import BaseModel

from app.models.game_version import VersionStatus
from app.schemas.common import SideEffectResponse
from app.schemas.version import GameVersionResponse


class SelfQAUpdate(BaseModel):
    testedDevices: bool = False
    testedAudio: bool = False
    gameplayComplete: bool = False
    contentVerified: bool = False
    note: str | None = None


class SubmitQCRequest(BaseModel):
    version_id: str | None = None


class QCReviewRequest(BaseModel):
    result: Literal["pass", "fail"]
    notes: str | None = None


class DecisionRequest(BaseModel):
    decision: Literal["approve", "reject"] = "approve"
    notes: str | None = None


class TransitionResponse(BaseModel):
    game_id: str
    previous_status: VersionStatus
    status: VersionStatus
    live_version_id: str | None = None
    version: GameVersionResponse
    side_effects: list[SideEffectResponse] = []
