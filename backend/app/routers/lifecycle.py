import uuid

from fastapi import APIRouter, Depends

from app.core.deps import get_current_active_user, get_lifecycle_service
from app.core.errors import InvalidInput
from app.models.user import User
from app.schemas.lifecycle import (
    DecisionRequest,
    QCReviewRequest,
    SelfQAUpdate,
    SubmitQCRequest,
    TransitionResponse,
)
from app.schemas.version import GameVersionResponse
from app.services.lifecycle_service import LifecycleService, TransitionResult

router = APIRouter(prefix="/games", tags=["lifecycle"])


def _transition_response(result: TransitionResult) -> dict:
    return {
        "game_id": result.game.game_id,
        "previous_status": result.previous_status,
        "status": result.status,
        "live_version_id": str(result.game.live_version_id) if result.game.live_version_id else None,
        "version": result.version,
        "side_effects": result.side_effects,
    }


@router.put("/{game_ref}/self-qa", response_model=GameVersionResponse)
def update_self_qa(
    game_ref: str,
    payload: SelfQAUpdate,
    current_user: User = Depends(get_current_active_user),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    checklist = payload.model_dump(exclude={"note"})
    return service.update_self_qa(game_ref, current_user, checklist, payload.note)


@router.post("/{game_ref}/submit-qc", response_model=TransitionResponse)
def submit_qc(
    game_ref: str,
    payload: SubmitQCRequest | None = None,
    current_user: User = Depends(get_current_active_user),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    version_id = None
    if payload and payload.version_id:
        try:
            version_id = uuid.UUID(payload.version_id)
        except ValueError as exc:
            raise InvalidInput("version_id must be a UUID") from exc
    result = service.submit_for_qc(game_ref, current_user, version_id)
    return _transition_response(result)


@router.post("/{game_ref}/qc-review", response_model=TransitionResponse)
def qc_review(
    game_ref: str,
    payload: QCReviewRequest,
    current_user: User = Depends(get_current_active_user),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    result = service.review_qc(game_ref, current_user, payload.result, payload.notes)
    return _transition_response(result)


@router.post("/{game_ref}/approve", response_model=TransitionResponse)
def approve(
    game_ref: str,
    payload: DecisionRequest | None = None,
    current_user: User = Depends(get_current_active_user),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    payload = payload or DecisionRequest()
    result = service.decide(game_ref, current_user, payload.decision, payload.notes)
    return _transition_response(result)


@router.post("/{game_ref}/publish", response_model=TransitionResponse)
def publish(
    game_ref: str,
    current_user: User = Depends(get_current_active_user),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    result = service.publish(game_ref, current_user)
    return _transition_response(result)
