from __future__ import annotations

from typing import Protocol

from attachkit.domain.entities.attachment import Attachment


class StorageBackend(Protocol):
    """Durable byte storage addressed by key.

    Implementations must not keep per-call mutable state; one instance is
    shared by every attachment of a record type.
    """

    kind: str

    def key_for(self, attachment: Attachment) -> str: ...
    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None: ...
    def read(self, key: str) -> bytes: ...
    def delete(self, key: str) -> None: ...
    def public_locator(self, key: str) -> str: ...
