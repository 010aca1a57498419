"""
Storage gateway: turns an uploaded ZIP into a directory of static assets.

Archives come out of many toolchains (plain HTML, `dist/`, `build/`, nested
project exports), so the game root is wherever the shallowest `index.html`
lives rather than a fixed layout.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import posixpath
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from app.core.errors import ExtractionError
from app.models.game_version import DEFAULT_ENTRY_FILE
from app.services.object_store import ObjectNotFoundError, ObjectStore
from app.services.storage_paths import construct_file_url, object_key

logger = logging.getLogger(__name__)

ENTRY_FILE_NAME = DEFAULT_ENTRY_FILE
IGNORED_PREFIXES = ("__MACOSX/",)

HTML_CACHE_CONTROL = "no-cache"
ASSET_CACHE_CONTROL = "public, max-age=31536000, immutable"


@dataclass
class ExtractionResult:
    url: str
    files: list[str]
    root: str
    entry_file: str = ENTRY_FILE_NAME


@dataclass
class DeleteResult:
    deleted: int = 0
    errors: list[str] = field(default_factory=list)


def find_entry_member(names: list[str]) -> str | None:
    """
    Return the archive member of the shallowest `index.html`, matched without
    regard to case. Ties go to the entry that appears first.
    """
    best: str | None = None
    best_depth = 0
    for name in names:
        if name.endswith("/") or name.startswith(IGNORED_PREFIXES):
            continue
        if posixpath.basename(name).lower() != ENTRY_FILE_NAME:
            continue
        depth = name.count("/")
        if best is None or depth < best_depth:
            best, best_depth = name, depth
    return best


def _root_of(member: str) -> str:
    directory = posixpath.dirname(member)
    return f"{directory}/" if directory else ""


def find_game_root(names: list[str]) -> str | None:
    """
    Return the directory prefix (with trailing slash, or "" for the archive
    root) holding the entry file. None when the archive has no `index.html`
    at all.
    """
    member = find_entry_member(names)
    return None if member is None else _root_of(member)


def rebase_entries(names: list[str], root: str) -> list[tuple[str, str]]:
    """Pair each archive member under `root` with its path relative to it."""
    pairs: list[tuple[str, str]] = []
    for name in names:
        if name.endswith("/") or name.startswith(IGNORED_PREFIXES):
            continue
        if root and not name.startswith(root):
            continue
        relative = name[len(root) :]
        parts = relative.split("/")
        if not relative or relative.startswith("/") or ".." in parts or "" in parts:
            logger.warning("Skipping unsafe archive member %r", name)
            continue
        pairs.append((name, relative))
    return pairs


def _content_type(relative_path: str) -> str:
    guessed, _ = mimetypes.guess_type(relative_path)
    return guessed or "application/octet-stream"


class StorageGateway:
    def __init__(self, store: ObjectStore, *, cdn_base: str, delete_batch_size: int = 10):
        self.store = store
        self.cdn_base = cdn_base.rstrip("/")
        self.delete_batch_size = max(1, delete_batch_size)

    def public_url(self, storage_path: str, relative_path: str = ENTRY_FILE_NAME) -> str:
        return construct_file_url(self.cdn_base, storage_path, relative_path)

    def put_archive(self, storage_path: str, file_name: str, data: bytes) -> str:
        key = object_key(storage_path, file_name)
        self.store.put_file(key, data, content_type="application/zip")
        return key

    def list_files(self, prefix: str) -> list[str]:
        return self.store.list_files(prefix)

    def has_entry_point(self, storage_path: str, entry_file: str = ENTRY_FILE_NAME) -> bool:
        return self.store.exists(object_key(storage_path, entry_file))

    def extract_zip(self, storage_path: str, file_name: str) -> ExtractionResult:
        archive_key = object_key(storage_path, file_name)
        try:
            payload = self.store.get_file(archive_key)
        except ObjectNotFoundError as exc:
            raise ExtractionError(f"Không tìm thấy file ZIP: {archive_key}") from exc

        try:
            archive = zipfile.ZipFile(io.BytesIO(payload))
        except zipfile.BadZipFile as exc:
            raise ExtractionError(f"File ZIP không hợp lệ: {exc}") from exc

        with archive:
            names = [info.filename for info in archive.infolist() if not info.is_dir()]
            entry_member = find_entry_member(names)
            if entry_member is None:
                raise ExtractionError("Không tìm thấy file index.html trong ZIP")
            root = _root_of(entry_member)
            entry_file = entry_member[len(root) :]

            entries = rebase_entries(names, root)
            logger.info(
                "Extracting %d files from %s (root=%r)", len(entries), archive_key, root or "/"
            )

            # A re-upload writes over the previous build; only new keys may be undone.
            existing = set(self.store.list_files(storage_path))
            uploaded: list[str] = []
            try:
                for member, relative in entries:
                    key = object_key(storage_path, relative)
                    is_html = relative.lower().endswith((".html", ".htm"))
                    self.store.put_file(
                        key,
                        archive.read(member),
                        content_type=_content_type(relative),
                        cache_control=HTML_CACHE_CONTROL if is_html else ASSET_CACHE_CONTROL,
                    )
                    uploaded.append(key)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Extraction of %s failed after %d files", archive_key, len(uploaded))
                cleanup = self.delete_files([key for key in uploaded if key not in existing])
                if cleanup.errors:
                    logger.warning("Could not remove %d partial files", len(cleanup.errors))
                raise ExtractionError(f"Upload file thất bại: {exc}") from exc

        return ExtractionResult(
            url=self.public_url(storage_path, entry_file),
            files=[relative for _, relative in entries],
            root=root,
            entry_file=entry_file,
        )

    def _delete_one(self, key: str) -> None:
        self.store.delete_file(key)

    def delete_files(self, keys: list[str]) -> DeleteResult:
        """Best-effort delete in batches; individual failures are collected, not raised."""
        result = DeleteResult()
        if not keys:
            return result

        batch_size = self.delete_batch_size
        with ThreadPoolExecutor(max_workers=batch_size) as pool:
            for start in range(0, len(keys), batch_size):
                batch = keys[start : start + batch_size]
                futures = [(key, pool.submit(self._delete_one, key)) for key in batch]
                for key, future in futures:
                    try:
                        future.result()
                        result.deleted += 1
                    except Exception as exc:  # noqa: BLE001
                        result.errors.append(f"{key}: {exc}")

        if result.errors:
            logger.warning("Deleted %d objects, %d failed", result.deleted, len(result.errors))
        return result
