"""Domain models, rules and errors."""

from attachkit.domain.entities import Attachment, LifecycleState
from attachkit.domain.errors import (
    AttachmentError,
    AttachmentNotFoundError,
    BackendError,
    CleanupError,
    ConfigurationError,
    DatastoreError,
    FieldError,
    LifecycleError,
    StorageKeyNotFoundError,
    ThumbnailError,
    ValidationError,
)
from attachkit.domain.geometry import Geometry
from attachkit.domain.options import AttachmentOptions, StorageConfig, ThumbnailSpec

__all__ = [
    "Attachment",
    "LifecycleState",
    "AttachmentError",
    "AttachmentNotFoundError",
    "BackendError",
    "CleanupError",
    "ConfigurationError",
    "DatastoreError",
    "FieldError",
    "LifecycleError",
    "StorageKeyNotFoundError",
    "ThumbnailError",
    "ValidationError",
    "Geometry",
    "AttachmentOptions",
    "StorageConfig",
    "ThumbnailSpec",
]
