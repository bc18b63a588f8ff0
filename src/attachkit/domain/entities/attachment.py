from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from attachkit.domain.content_types import is_image
from attachkit.domain.filenames import sanitize_filename


class LifecycleState(str, Enum):
    """Where an attachment instance is in its lifecycle."""

    NEW = "new"
    STAGED = "staged"
    VALIDATED = "validated"
    INVALID = "invalid"
    COMMITTED = "committed"
    PERSISTED = "persisted"
    DELETED = "deleted"


@dataclass(eq=False)
class Attachment:
    """One stored file: an original upload or a derived thumbnail.

    ``filename`` is sanitized and ``content_type`` stripped on assignment.
    """

    filename: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None

    # Assigned by the datastore on commit
    id: Optional[int] = None

    width: Optional[int] = None
    height: Optional[int] = None

    # Stable once first persisted
    storage_key: Optional[str] = None

    # Set for thumbnails only
    parent_id: Optional[int] = None
    thumbnail_label: Optional[str] = None

    # Host-defined fields, e.g. set by a before_thumbnail_saved hook
    extra: dict[str, Any] = field(default_factory=dict)

    state: LifecycleState = LifecycleState.NEW
    staging: Any = field(default=None, repr=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "filename":
            value = sanitize_filename(value)
        elif name == "content_type" and value is not None:
            value = str(value).strip()
        super().__setattr__(name, value)

    @property
    def is_image(self) -> bool:
        return is_image(self.content_type)

    @property
    def is_thumbnail(self) -> bool:
        return self.parent_id is not None

    @property
    def is_thumbnailable(self) -> bool:
        """An image original; thumbnails are never thumbnailed themselves."""
        return self.is_image and self.parent_id is None

    @property
    def image_size(self) -> str:
        """Width and height as ``"WxH"``."""
        return f"{self.width or ''}x{self.height or ''}"

    @property
    def path_id(self) -> Optional[int]:
        """Identity used to place bytes; thumbnails sit beside their original."""
        return self.parent_id if self.parent_id is not None else self.id
