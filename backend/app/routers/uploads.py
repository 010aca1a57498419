from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.core.deps import get_current_active_user, get_upload_service
from app.models.user import User
from app.schemas.upload import (
    UploadCompleteRequest,
    UploadCompleteResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from app.services.upload_service import UploadOutcome, UploadService

router = APIRouter(prefix="/games", tags=["uploads"])


def _complete_response(outcome: UploadOutcome) -> dict:
    return {
        "game_id": outcome.game.id,
        "slug": outcome.game.game_id,
        "created": outcome.created,
        "entry_url": outcome.extraction.url,
        "files": outcome.extraction.files,
        "stale_files_removed": outcome.stale_files_removed,
        "version": outcome.version,
        "side_effects": outcome.side_effects,
    }


@router.post("/upload-url", response_model=UploadUrlResponse)
def request_upload_url(
    payload: UploadUrlRequest,
    current_user: User = Depends(get_current_active_user),
    service: UploadService = Depends(get_upload_service),
):
    return service.request_upload_slot(
        current_user, payload.game_id, payload.version, payload.file_name, title=payload.title
    )


@router.post("/upload-complete", response_model=UploadCompleteResponse)
def upload_complete(
    payload: UploadCompleteRequest,
    current_user: User = Depends(get_current_active_user),
    service: UploadService = Depends(get_upload_service),
):
    outcome = service.complete_upload(
        current_user,
        payload.game_id,
        payload.version,
        payload.storage_path,
        payload.file_name,
        payload.file_size,
        release_note=payload.release_note,
    )
    return _complete_response(outcome)


@router.post(
    "/upload", response_model=UploadCompleteResponse, status_code=status.HTTP_201_CREATED
)
def upload_small(
    game_id: Annotated[str, Form()],
    version: Annotated[str, Form()],
    file: Annotated[UploadFile, File()],
    current_user: User = Depends(get_current_active_user),
    service: UploadService = Depends(get_upload_service),
):
    data = file.file.read()
    outcome = service.upload_small(current_user, game_id, version, file.filename or "", data)
    return _complete_response(outcome)
