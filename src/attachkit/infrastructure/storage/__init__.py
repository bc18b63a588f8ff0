"""Storage backends and backend selection."""

from __future__ import annotations

from typing import Callable

from attachkit.application.ports.storage_backend import StorageBackend
from attachkit.domain.errors import ConfigurationError
from attachkit.domain.options import StorageConfig
from attachkit.infrastructure.storage.db_file import DbFileBackend
from attachkit.infrastructure.storage.file_system import FileSystemBackend
from attachkit.infrastructure.storage.s3 import S3Backend, S3StoreConfig

BackendFactory = Callable[[StorageConfig], StorageBackend]

BACKENDS: dict[str, BackendFactory] = {
    "file_system": FileSystemBackend,
    "s3": S3Backend,
    "db_file": DbFileBackend,
}


def register_backend(name: str, factory: BackendFactory) -> None:
    """Make a backend selectable by name."""
    BACKENDS[name] = factory


def create_backend(config: StorageConfig) -> StorageBackend:
    """Build the backend named by ``config.kind``."""
    try:
        factory = BACKENDS[config.kind]
    except KeyError:
        raise ConfigurationError(f"Unknown storage backend: {config.kind}") from None
    return factory(config)


__all__ = [
    "BACKENDS",
    "DbFileBackend",
    "FileSystemBackend",
    "S3Backend",
    "S3StoreConfig",
    "create_backend",
    "register_backend",
]
