import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core import security
from app.core.config import settings
from app.core.db import get_db
from app.models.user import User
from app.repositories.registry import RepositoryRegistry
from app.schemas.auth import TokenPayload
from app.services.game_service import GameService
from app.services.lifecycle_service import LifecycleService
from app.services.storage import StorageGateway
from app.services.upload_service import UploadService

reusable_oauth2 = OAuth2PasswordBearer(tokenUrl="/api/v1/login/access-token")


def get_current_user(db: Session = Depends(get_db), token: str = Depends(reusable_oauth2)) -> User:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[security.ALGORITHM])
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub or "")
    except (JWTError, ValidationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def get_registry(db: Session = Depends(get_db)) -> RepositoryRegistry:
    return RepositoryRegistry(db)


def get_storage_gateway(request: Request) -> StorageGateway:
    return request.app.state.storage_gateway


def get_game_service(repos: RepositoryRegistry = Depends(get_registry)) -> GameService:
    return GameService(repos)


def get_lifecycle_service(repos: RepositoryRegistry = Depends(get_registry)) -> LifecycleService:
    return LifecycleService(repos)


def get_upload_service(
    repos: RepositoryRegistry = Depends(get_registry),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> UploadService:
    return UploadService(repos, gateway, settings)
