import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.config import settings
from app.core.deps import get_storage_gateway
from app.core.security import UploadTokenError, decode_upload_token
from app.schemas.upload import StorageUploadResponse
from app.services.object_store import InvalidObjectKeyError
from app.services.storage import StorageGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.put("/upload", response_model=StorageUploadResponse)
async def signed_upload(
    token: str,
    request: Request,
    gateway: StorageGateway = Depends(get_storage_gateway),
):
    """
    Target of signed upload URLs. The token alone authorizes the write; it is
    scoped to a single object key and expires.
    """
    try:
        grant = decode_upload_token(token)
    except UploadTokenError as exc:
        logger.warning("Rejected signed upload: %s", exc)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))

    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Empty upload body")
    if len(body) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        gateway.store.put_file(grant["key"], body, content_type=grant["content_type"])
    except InvalidObjectKeyError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    logger.info("Stored %d bytes at %s via signed URL", len(body), grant["key"])
    return StorageUploadResponse(object_key=grant["key"], size=len(body))
