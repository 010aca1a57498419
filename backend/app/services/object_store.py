"""
Object storage client used by the storage gateway.

`LocalObjectStore` keeps objects on disk under `STORAGE_ROOT` and issues
signed write URLs that point back at this API (`PUT /api/v1/storage/upload`).
A cloud bucket client only has to provide the same methods.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Protocol
from urllib.parse import urlencode

from app.core.clock import utcnow
from app.core.security import create_upload_token

logger = logging.getLogger(__name__)


class ObjectNotFoundError(Exception):
    pass


class InvalidObjectKeyError(ValueError):
    pass


@dataclass(frozen=True)
class SignedUpload:
    url: str
    object_key: str
    expires_at: datetime


class ObjectStore(Protocol):
    def get_file(self, key: str) -> bytes: ...

    def put_file(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        cache_control: str | None = None,
    ) -> None: ...

    def delete_file(self, key: str) -> None: ...

    def list_files(self, prefix: str) -> list[str]: ...

    def exists(self, key: str) -> bool: ...

    def generate_signed_upload_url(
        self, key: str, *, content_type: str, expires_in: int
    ) -> SignedUpload: ...


def _validate_key(key: str) -> str:
    if not key or key.startswith("/") or "\\" in key:
        raise InvalidObjectKeyError(f"Invalid object key: {key!r}")
    if any(part in ("", ".", "..") for part in key.split("/")):
        raise InvalidObjectKeyError(f"Invalid object key: {key!r}")
    return key


class LocalObjectStore:
    """Filesystem-backed bucket. Content-Type and Cache-Control are not persisted."""

    def __init__(self, root: str | os.PathLike[str], *, public_api_base_url: str):
        self.root = Path(root)
        self.public_api_base_url = public_api_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        return self.root.joinpath(*_validate_key(key).split("/"))

    def get_file(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)
        return path.read_bytes()

    def put_file(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        cache_control: str | None = None,
    ) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type)

    def delete_file(self, key: str) -> None:
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)
        path.unlink()

    def list_files(self, prefix: str) -> list[str]:
        base = self.root.joinpath(*[p for p in prefix.strip("/").split("/") if p])
        if not base.exists():
            return []
        return sorted(
            path.relative_to(self.root).as_posix() for path in base.rglob("*") if path.is_file()
        )

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def generate_signed_upload_url(
        self, key: str, *, content_type: str, expires_in: int
    ) -> SignedUpload:
        _validate_key(key)
        expires_at = utcnow() + timedelta(seconds=expires_in)
        token = create_upload_token(key, content_type, expires_at)
        query = urlencode({"token": token})
        return SignedUpload(
            url=f"{self.public_api_base_url}/api/v1/storage/upload?{query}",
            object_key=key,
            expires_at=expires_at,
        )
