"""SQLite implementation of the attachment datastore contract."""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

from loguru import logger

from attachkit.domain.entities.attachment import Attachment, LifecycleState
from attachkit.domain.errors import DatastoreError, FieldError


class SQLiteAttachmentRepository:
    """Attachment rows in one SQLite table.

    Thumbnails are rows with ``parent_id`` set; ``(parent_id, thumbnail)`` is
    unique so a label is never stored twice for the same original.
    """

    def __init__(self, db_path: str | Path = "attachments.db", table_name: str = "attachments"):
        if not table_name.isidentifier():
            raise ValueError(f"Invalid table name: {table_name}")
        self.db_path = Path(db_path)
        self.table = table_name
        self._write_lock = threading.Lock()
        self._ensure_db()

    def _ensure_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.executescript(f"""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS {self.table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    parent_id INTEGER REFERENCES {self.table}(id),
                    thumbnail TEXT,
                    filename TEXT NOT NULL,
                    content_type TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    width INTEGER,
                    height INTEGER,
                    storage_key TEXT,
                    extra_json TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,

                    UNIQUE(parent_id, thumbnail)
                );

                CREATE INDEX IF NOT EXISTS idx_{self.table}_parent
                    ON {self.table}(parent_id);
            """)
        logger.info(f"Attachment table {self.table} ready at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _from_row(self, row: sqlite3.Row) -> Attachment:
        return Attachment(
            id=row["id"],
            filename=row["filename"],
            content_type=row["content_type"],
            size=row["size"],
            width=row["width"],
            height=row["height"],
            storage_key=row["storage_key"],
            parent_id=row["parent_id"],
            thumbnail_label=row["thumbnail"],
            extra=json.loads(row["extra_json"]) if row["extra_json"] else {},
            state=LifecycleState.PERSISTED if row["storage_key"] else LifecycleState.COMMITTED,
        )

    def commit(self, attachment: Attachment) -> list[FieldError]:
        """Insert or update the row; assigns ``attachment.id`` on insert."""
        now = datetime.now(timezone.utc).isoformat()
        values = (
            attachment.parent_id,
            attachment.thumbnail_label,
            attachment.filename,
            attachment.content_type,
            attachment.size,
            attachment.width,
            attachment.height,
            attachment.storage_key,
            json.dumps(attachment.extra) if attachment.extra else None,
        )
        try:
            with self._write_lock, self._connection() as conn:
                if attachment.id is None:
                    cursor = conn.execute(
                        f"""INSERT INTO {self.table}
                            (parent_id, thumbnail, filename, content_type, size, width, height,
                             storage_key, extra_json, created_at, updated_at)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                        (*values, now, now),
                    )
                    attachment.id = cursor.lastrowid
                else:
                    conn.execute(
                        f"""UPDATE {self.table} SET
                            parent_id = ?, thumbnail = ?, filename = ?, content_type = ?, size = ?,
                            width = ?, height = ?, storage_key = ?, extra_json = ?, updated_at = ?
                            WHERE id = ?""",
                        (*values, now, attachment.id),
                    )
        except sqlite3.IntegrityError as e:
            logger.warning(f"Rejected attachment row {attachment.filename}: {e}")
            if "UNIQUE" in str(e):
                return [FieldError("thumbnail_label", "has already been taken")]
            return [FieldError("base", str(e))]
        except (sqlite3.Error, TypeError) as e:
            raise DatastoreError(f"Failed to commit attachment {attachment.filename}: {e}") from e
        return []

    def get(self, identity: int) -> Optional[Attachment]:
        with self._connection() as conn:
            row = conn.execute(f"SELECT * FROM {self.table} WHERE id = ?", (identity,)).fetchone()
        return self._from_row(row) if row else None

    def find_or_create_child(self, parent_id: int, label: str) -> Attachment:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {self.table} WHERE parent_id = ? AND thumbnail = ?",
                (parent_id, label),
            ).fetchone()
        if row:
            return self._from_row(row)
        return Attachment(parent_id=parent_id, thumbnail_label=label)

    def children_of(self, parent_id: int) -> list[Attachment]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {self.table} WHERE parent_id = ? ORDER BY id",
                (parent_id,),
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def delete_row(self, identity: int) -> None:
        try:
            with self._write_lock, self._connection() as conn:
                conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (identity,))
        except sqlite3.Error as e:
            raise DatastoreError(f"Failed to delete attachment row {identity}: {e}") from e
