"""
Security utilities.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# NOTE: bcrypt backend has compatibility issues in some CI environments (see passlib/bcrypt).
# PBKDF2-SHA256 is deterministic and avoids platform-specific bcrypt backend problems.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ALGORITHM = "HS256"

UPLOAD_TOKEN_PURPOSE = "object-upload"


class UploadTokenError(Exception):
    pass


def create_access_token(subject: str | Any, expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        # Default expiration time as fallback, though service should handle this.
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)

    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)
    return encoded_jwt


def create_upload_token(object_key: str, content_type: str, expires_at: datetime) -> str:
    """
    Sign a write grant for exactly one object key.
    """
    to_encode = {
        "exp": expires_at,
        "key": object_key,
        "ct": content_type,
        "purpose": UPLOAD_TOKEN_PURPOSE,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_upload_token(token: str) -> dict[str, str]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise UploadTokenError("Signed upload URL has expired") from exc
    except JWTError as exc:
        raise UploadTokenError("Signed upload URL is invalid") from exc

    if payload.get("purpose") != UPLOAD_TOKEN_PURPOSE or not payload.get("key"):
        raise UploadTokenError("Signed upload URL is invalid")
    return {"key": payload["key"], "content_type": payload.get("ct", "application/zip")}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        return False


def get_password_hash(password: str) -> str:
    """
    Generate a password hash.
    """
    return pwd_context.hash(password)
