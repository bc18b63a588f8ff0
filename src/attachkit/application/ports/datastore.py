from __future__ import annotations

from typing import Optional, Protocol

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import FieldError


class AttachmentDatastore(Protocol):
    """The host's record persistence, reduced to what the lifecycle needs."""

    def commit(self, attachment: Attachment) -> list[FieldError]:
        """Insert or update the row; assigns ``attachment.id`` on first commit."""
        ...

    def get(self, identity: int) -> Optional[Attachment]: ...

    def find_or_create_child(self, parent_id: int, label: str) -> Attachment:
        """Existing thumbnail row for ``parent_id`` + ``label``, or a new unsaved one."""
        ...

    def children_of(self, parent_id: int) -> list[Attachment]: ...

    def delete_row(self, identity: int) -> None: ...
