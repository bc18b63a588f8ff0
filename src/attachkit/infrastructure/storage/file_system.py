"""Local filesystem storage backend."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from loguru import logger

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import BackendError, StorageKeyNotFoundError
from attachkit.domain.options import StorageConfig
from attachkit.infrastructure.storage.keys import partitioned_key


class FileSystemBackend:
    """Stores bytes under ``root/<key>``.

    Keys look like ``public/attachments/0000/0042/photo.jpg``. Public
    locators drop the ``public_root`` directory: ``/attachments/0000/0042/photo.jpg``.
    """

    kind = "file_system"

    def __init__(self, config: StorageConfig):
        self.config = config
        self.root = Path(config.connection.get("root", "."))
        self.public_root = config.connection.get("public_root", "public").strip("/")

    def key_for(self, attachment: Attachment) -> str:
        return partitioned_key(self.config.path_prefix, attachment)

    def _path(self, key: str) -> Path:
        return self.root / key

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        path = self._path(key)
        tmp = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target, then swap.
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, path)
        except OSError as e:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            logger.error(f"Failed to write {path}: {e}")
            raise BackendError(key, f"write failed: {e}") from e
        logger.debug(f"Wrote {len(data)} bytes to {path}")

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise StorageKeyNotFoundError(key) from None
        except OSError as e:
            raise BackendError(key, f"read failed: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
            parent = path.parent
            if parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise BackendError(key, f"delete failed: {e}") from e

    def public_locator(self, key: str) -> str:
        relative = key
        if self.public_root and key.startswith(f"{self.public_root}/"):
            relative = key[len(self.public_root) + 1 :]
        return f"{self.config.base_url.rstrip('/')}/{relative}"
