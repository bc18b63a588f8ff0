"""Recognized image content types."""

from __future__ import annotations

from typing import Iterable

IMAGE_SENTINEL = "image"

# Includes the legacy aliases browsers and old upload tools still send.
IMAGE_CONTENT_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/pjpeg",
    "image/jpg",
    "image/gif",
    "image/png",
    "image/x-png",
    "image/x-ms-bmp",
    "image/bmp",
    "image/x-bmp",
    "image/x-bitmap",
    "image/x-xbitmap",
    "image/x-win-bitmap",
    "image/x-windows-bmp",
    "image/ms-bmp",
    "application/bmp",
    "application/x-bmp",
    "application/x-win-bitmap",
    "application/preview",
    "image/jp_",
    "application/jpg",
    "application/x-jpg",
    "image/pipeg",
    "image/vnd.swiftview-jpeg",
    "application/png",
    "application/x-png",
    "image/gi_",
    "image/x-citrix-pjpeg",
)


def is_image(content_type: str | None) -> bool:
    """Return True if the content type is a recognized image type."""
    return content_type in IMAGE_CONTENT_TYPES


def expand_content_types(content_types: str | Iterable[str] | None) -> frozenset[str] | None:
    """Expand an allow-list, replacing the ``image`` sentinel with the image set.

    ``None`` stays ``None`` (allow all).
    """
    if content_types is None:
        return None
    if isinstance(content_types, str):
        content_types = [content_types]

    expanded: set[str] = set()
    for ct in content_types:
        ct = ct.strip()
        if ct == IMAGE_SENTINEL:
            expanded.update(IMAGE_CONTENT_TYPES)
        elif ct:
            expanded.add(ct)
    return frozenset(expanded)
