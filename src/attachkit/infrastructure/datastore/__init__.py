"""Reference datastore implementations."""

from attachkit.infrastructure.datastore.sqlite_repository import SQLiteAttachmentRepository

__all__ = ["SQLiteAttachmentRepository"]
