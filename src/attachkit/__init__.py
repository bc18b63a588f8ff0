"""Attachment lifecycle management: staging, validation, thumbnails and pluggable storage."""

from attachkit.application.ports import (
    AttachmentDatastore,
    AttachmentHooks,
    ImageProcessor,
    StorageBackend,
)
from attachkit.application.profile import AttachmentProfile
from attachkit.application.use_cases import AttachmentLifecycle, LifecycleResult
from attachkit.domain import (
    Attachment,
    AttachmentError,
    AttachmentNotFoundError,
    AttachmentOptions,
    BackendError,
    CleanupError,
    ConfigurationError,
    DatastoreError,
    FieldError,
    Geometry,
    LifecycleError,
    LifecycleState,
    StorageKeyNotFoundError,
    ThumbnailError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "AttachmentDatastore",
    "AttachmentHooks",
    "ImageProcessor",
    "StorageBackend",
    "AttachmentProfile",
    "AttachmentLifecycle",
    "LifecycleResult",
    "Attachment",
    "AttachmentError",
    "AttachmentNotFoundError",
    "AttachmentOptions",
    "BackendError",
    "CleanupError",
    "ConfigurationError",
    "DatastoreError",
    "FieldError",
    "Geometry",
    "LifecycleError",
    "LifecycleState",
    "StorageKeyNotFoundError",
    "ThumbnailError",
    "ValidationError",
]
