import uuid

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_current_active_user, get_game_service
from app.models.user import User
from app.repositories.audit_repository import AuditLogFilter
from app.schemas.audit import AuditLogResponse
from app.schemas.game import (
    DuplicateCheckResponse,
    GameCreate,
    GameHistoryResponse,
    GameMutationResponse,
    GameResponse,
    GameSoftDelete,
)
from app.schemas.version import GameVersionResponse
from app.services.game_service import GameService

router = APIRouter(tags=["games"])


@router.post("/games", response_model=GameMutationResponse, status_code=status.HTTP_201_CREATED)
def create_game(
    payload: GameCreate,
    current_user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    fields = payload.model_dump(exclude={"game_id", "title"}, exclude_none=True)
    game, side_effects = service.create_game(
        current_user, game_id=payload.game_id, title=payload.title, **fields
    )
    return {"game": game, "side_effects": side_effects}


@router.get("/games", response_model=list[GameResponse])
def list_games(
    mine: bool = False,
    include_deleted: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return service.list_games(
        current_user, mine=mine, include_deleted=include_deleted, limit=limit, offset=offset
    )


@router.get("/games/check-duplicate", response_model=DuplicateCheckResponse)
def check_duplicate(
    game_id: str = Query(..., alias="gameId"),
    _user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return DuplicateCheckResponse(game_id=game_id, exists=service.check_duplicate(game_id))


@router.get("/games/{game_ref}", response_model=GameResponse)
def get_game(
    game_ref: str,
    _user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return service.get_game(game_ref)


@router.get("/games/{game_ref}/versions", response_model=list[GameVersionResponse])
def list_versions(
    game_ref: str,
    _user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return service.list_versions(game_ref)


@router.get("/games/{game_ref}/versions/{version}", response_model=GameVersionResponse)
def get_version(
    game_ref: str,
    version: str,
    _user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return service.get_version(game_ref, version)


@router.get("/games/{game_ref}/history", response_model=list[GameHistoryResponse])
def game_history(
    game_ref: str,
    _user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    return service.history(game_ref)


@router.post("/games/{game_ref}/soft-delete", response_model=GameMutationResponse)
def soft_delete_game(
    game_ref: str,
    payload: GameSoftDelete | None = None,
    current_user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    reason = payload.reason if payload else None
    game, side_effects = service.soft_delete(game_ref, current_user, reason)
    return {"game": game, "side_effects": side_effects}


@router.post("/games/{game_ref}/restore", response_model=GameMutationResponse)
def restore_game(
    game_ref: str,
    current_user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    game, side_effects = service.restore(game_ref, current_user)
    return {"game": game, "side_effects": side_effects}


@router.get("/audit-logs", response_model=list[AuditLogResponse], tags=["audit"])
def list_audit_logs(
    user_id: uuid.UUID | None = None,
    action: str | None = None,
    target_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    service: GameService = Depends(get_game_service),
):
    filters = AuditLogFilter(user_id=user_id, action=action, target_id=target_id)
    return service.audit_logs(current_user, filters, limit=limit, offset=offset)
