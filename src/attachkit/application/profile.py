"""Per-record-type attachment configuration, resolved once."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

from attachkit.application.ports.datastore import AttachmentDatastore
from attachkit.application.ports.hooks import AttachmentHooks
from attachkit.application.ports.image_processor import ImageProcessor
from attachkit.application.ports.storage_backend import StorageBackend
from attachkit.domain.options import AttachmentOptions
from attachkit.infrastructure.imaging import select_processor
from attachkit.infrastructure.storage import create_backend

T = TypeVar("T")

DEFAULT_TEMPFILE_PATH = Path("tmp") / "attachkit"


@dataclass(frozen=True)
class AttachmentProfile:
    """Everything one record type needs to run attachment lifecycles.

    The backend and image processor are chosen here, at configuration time,
    and never change afterwards.
    """

    name: str
    options: AttachmentOptions
    datastore: AttachmentDatastore
    backend: StorageBackend
    processor: Optional[ImageProcessor]
    hooks: AttachmentHooks = AttachmentHooks()
    tempfile_path: Path = DEFAULT_TEMPFILE_PATH
    _processor_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def configure(
        cls,
        name: str,
        options: AttachmentOptions,
        *,
        datastore: AttachmentDatastore,
        hooks: Optional[AttachmentHooks] = None,
        backend: Optional[StorageBackend] = None,
        processor: Optional[ImageProcessor] = None,
        tempfile_path: Optional[str | Path] = None,
    ) -> "AttachmentProfile":
        """Resolve backend and processor; raises ``ConfigurationError`` on failure."""
        backend = backend or create_backend(options.storage)
        if processor is None:
            processor = select_processor(options.processor, options.processors)
        logger.info(
            f"Configured attachments for {name}: storage={backend.kind}, "
            f"processor={processor.name if processor else None}, "
            f"thumbnails={options.thumbnails.labels}"
        )
        return cls(
            name=name,
            options=options,
            datastore=datastore,
            backend=backend,
            processor=processor,
            hooks=hooks or AttachmentHooks(),
            tempfile_path=Path(tempfile_path) if tempfile_path else DEFAULT_TEMPFILE_PATH,
        )

    def extend(self, name: str, **overrides: Any) -> "AttachmentProfile":
        """Profile for a derived record type.

        Options are inherited and overridden; the processor is always the
        parent's. A new backend is built only when storage options change.
        """
        options = self.options.inherit(**overrides)
        backend = self.backend if options.storage == self.options.storage else create_backend(options.storage)
        return replace(self, name=name, options=options, backend=backend, _processor_lock=threading.Lock())

    @property
    def can_process_images(self) -> bool:
        return self.processor is not None

    @property
    def png_for_gif(self) -> bool:
        return self.processor is not None and not self.processor.supports_gif_output

    def with_image(self, path: str | Path, fn: Callable[[Any], T]) -> T:
        """Run ``fn`` on the decoded image, serialized for non-reentrant engines."""
        if self.processor is None:
            raise RuntimeError(f"{self.name} has no image processor")
        if self.processor.reentrant:
            return self.processor.with_image(str(path), fn)
        with self._processor_lock:
            return self.processor.with_image(str(path), fn)
