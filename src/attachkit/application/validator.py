"""Attachment field validation against configured constraints."""

from __future__ import annotations

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import FieldError
from attachkit.domain.options import AttachmentOptions


class Validator:
    """Collects field errors; never raises and never blocks by itself."""

    def __init__(self, options: AttachmentOptions):
        self.size_range = options.size_range
        self.content_types = options.content_types

    def validate(self, attachment: Attachment) -> list[FieldError]:
        errors: list[FieldError] = []

        for name in ("size", "content_type", "filename"):
            value = getattr(attachment, name)
            if value is None or value == "":
                errors.append(FieldError(name, "can't be blank"))

        low, high = self.size_range
        if attachment.size is not None and not low <= attachment.size <= high:
            errors.append(FieldError("size", f"is not included in the list ({low}..{high})"))

        # An empty allow-list accepts every type.
        if (
            self.content_types
            and attachment.content_type
            and attachment.content_type not in self.content_types
        ):
            errors.append(FieldError("content_type", "is not included in the list"))

        return errors
