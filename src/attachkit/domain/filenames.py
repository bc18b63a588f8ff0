"""Filename sanitizing and derivative naming."""

from __future__ import annotations

import re

_DIRECTORY_PART = re.compile(r"^.*[\\/]")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.\-]")
_EXTENSION = re.compile(r"\.\w+$")


def sanitize_filename(filename: str | None) -> str | None:
    """Strip any directory component and replace unsafe characters with ``_``.

    Windows paths are handled on every platform, so ``C:\\tmp\\a b.png``
    becomes ``a_b.png``.
    """
    if filename is None:
        return None
    name = _DIRECTORY_PART.sub("", filename.strip())
    return _UNSAFE_CHARS.sub("_", name)


def split_extension(filename: str) -> tuple[str, str]:
    """Split ``photo.jpg`` into ``("photo", ".jpg")``; the extension may be empty."""
    match = _EXTENSION.search(filename)
    if not match:
        return filename, ""
    return filename[: match.start()], match.group(0)


def thumbnail_name_for(filename: str, label: str | None, *, png_for_gif: bool = False) -> str:
    """Derivative filename: ``photo.jpg`` with label ``thumb`` is ``photo_thumb.jpg``.

    With ``png_for_gif`` a ``.gif`` extension is rewritten to ``.png``.
    """
    if not label:
        return filename
    base, ext = split_extension(filename)
    if png_for_gif and ext.lower() == ".gif":
        ext = ".png"
    return f"{base}_{label}{ext}"
