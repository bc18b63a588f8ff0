"""Deterministic storage keys derived from attachment identity and filename."""

from __future__ import annotations

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import LifecycleError


def partitioned_path(identity: int) -> list[str]:
    """``42`` -> ``["0000", "0042"]``; keeps directories small on disk."""
    padded = f"{identity:08d}"
    return [padded[i : i + 4] for i in range(0, len(padded), 4)]


def _require_identity(attachment: Attachment) -> int:
    if attachment.path_id is None or not attachment.filename:
        raise LifecycleError("Storage key needs a committed attachment with a filename")
    return attachment.path_id


def partitioned_key(prefix: str, attachment: Attachment) -> str:
    identity = _require_identity(attachment)
    return "/".join([prefix, *partitioned_path(identity), attachment.filename])


def flat_key(prefix: str, attachment: Attachment) -> str:
    identity = _require_identity(attachment)
    return f"{prefix}/{identity}/{attachment.filename}"
