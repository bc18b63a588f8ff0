"""Ports implemented by infrastructure adapters or the host application."""

from attachkit.application.ports.datastore import AttachmentDatastore
from attachkit.application.ports.hooks import AttachmentHooks
from attachkit.application.ports.image_processor import ImageProcessor
from attachkit.application.ports.storage_backend import StorageBackend

__all__ = [
    "AttachmentDatastore",
    "AttachmentHooks",
    "ImageProcessor",
    "StorageBackend",
]
