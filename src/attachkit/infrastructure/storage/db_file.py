"""Database blob storage backend (SQLite)."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from loguru import logger

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import BackendError, StorageKeyNotFoundError
from attachkit.domain.options import StorageConfig
from attachkit.infrastructure.storage.keys import flat_key


class DbFileBackend:
    """Stores bytes as rows of a ``db_files`` table keyed by storage key."""

    kind = "db_file"

    def __init__(self, config: StorageConfig):
        self.config = config
        self.db_path = Path(config.connection.get("db_path", "attachments.db"))
        self._ensure_db()

    def _ensure_db(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS db_files (
                        key TEXT PRIMARY KEY,
                        data BLOB NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
        except (OSError, sqlite3.Error) as e:
            raise BackendError(None, f"cannot initialize blob store at {self.db_path}: {e}") from e
        logger.info(f"Blob store initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def key_for(self, attachment: Attachment) -> str:
        return flat_key(self.config.path_prefix, attachment)

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                conn.execute(
                    """INSERT INTO db_files (key, data, updated_at) VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at""",
                    (key, sqlite3.Binary(data), now),
                )
        except sqlite3.Error as e:
            logger.error(f"Blob write failed for {key}: {e}")
            raise BackendError(key, f"write failed: {e}") from e

    def read(self, key: str) -> bytes:
        try:
            with self._connection() as conn:
                row = conn.execute("SELECT data FROM db_files WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(key, f"read failed: {e}") from e
        if row is None:
            raise StorageKeyNotFoundError(key)
        return bytes(row[0])

    def delete(self, key: str) -> None:
        try:
            with self._connection() as conn:
                conn.execute("DELETE FROM db_files WHERE key = ?", (key,))
        except sqlite3.Error as e:
            logger.error(f"Blob delete failed for {key}: {e}")
            raise BackendError(key, f"delete failed: {e}") from e

    def public_locator(self, key: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{key}"
