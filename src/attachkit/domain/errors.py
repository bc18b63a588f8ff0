"""Attachment error hierarchy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field} {self.message}"


class AttachmentError(Exception):
    """Base exception for attachment errors."""


class ValidationError(AttachmentError):
    """Raised on request when an attachment carries field errors."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors) or "invalid attachment")


class ThumbnailError(AttachmentError):
    """An image could not be decoded or resized, or a thumbnail could not be saved."""

    def __init__(self, message: str, label: str | None = None):
        self.label = label
        super().__init__(f"thumbnail '{label}': {message}" if label else message)


class BackendError(AttachmentError):
    """Reading, writing or deleting bytes in a storage backend failed."""

    def __init__(self, key: str | None, message: str):
        self.key = key
        super().__init__(f"{message} (key={key})" if key else message)


class StorageKeyNotFoundError(BackendError):
    """The requested storage key holds no bytes."""

    def __init__(self, key: str):
        super().__init__(key, "no stored bytes")


class CleanupError(BackendError):
    """One or more items could not be removed during cleanup.

    Raised only after every item was attempted.
    """

    def __init__(self, failures: list[Exception]):
        self.failures = list(failures)
        summary = "; ".join(str(f) for f in self.failures)
        super().__init__(None, f"{len(self.failures)} cleanup failure(s): {summary}")


class ConfigurationError(AttachmentError):
    """Attachment options cannot be resolved into a working profile."""


class LifecycleError(AttachmentError):
    """An attachment was asked to make a transition its state does not allow."""


class AttachmentNotFoundError(AttachmentError):
    """No attachment exists for the given identity."""


class DatastoreError(AttachmentError):
    """The record datastore failed to read, write or delete a row."""
