from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from attachkit.domain.entities.attachment import Attachment


@dataclass(frozen=True)
class AttachmentHooks:
    """Optional host callbacks; a missing hook is simply skipped."""

    # Called with the child before it is committed; may set extra fields.
    before_thumbnail_saved: Optional[Callable[[Attachment], None]] = None
    # Called once the attachment's bytes are persisted.
    after_attachment_processed: Optional[Callable[[Attachment], None]] = None
    # Called with the attachment and the open image handle after processing.
    after_resize: Optional[Callable[[Attachment, Any], None]] = None

    def fire(self, name: str, *args: Any) -> None:
        hook = getattr(self, name)
        if hook is not None:
            hook(*args)
