# src/attachkit/infrastructure/__init__.py
"""Infrastructure layer - storage backends, image engines, datastore and configuration."""

from attachkit.infrastructure.settings import Settings, get_settings


def get_sqlite_repository(*args, **kwargs):
    """Get the SQLite attachment datastore (lazy import)."""
    from attachkit.infrastructure.datastore import SQLiteAttachmentRepository

    return SQLiteAttachmentRepository(*args, **kwargs)


__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Datastore
    "get_sqlite_repository",
]
