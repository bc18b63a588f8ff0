"""Pillow image processing engine."""

from __future__ import annotations

import io
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from loguru import logger

from attachkit.domain.errors import ThumbnailError
from attachkit.domain.geometry import Geometry

T = TypeVar("T")

_PROFILE_KEYS = ("exif", "icc_profile", "xmp", "XML:com.adobe.xmp", "photoshop")


class PillowProcessor:
    """Engine backed by Pillow. Writes GIF output natively."""

    name = "pillow"
    supports_gif_output = True
    reentrant = True

    def __init__(self) -> None:
        # ImportError here marks the engine as unavailable
        from PIL import Image, ImageOps

        self._Image = Image
        self._ImageOps = ImageOps

    @contextmanager
    def open_image(self, path: str) -> Iterator[Any]:
        """Open and fully decode ``path``; the handle is closed on exit."""
        try:
            image = self._Image.open(path)
        except (OSError, ValueError, self._Image.DecompressionBombError) as e:
            raise ThumbnailError(f"Cannot decode image {path}: {e}") from e
        try:
            try:
                image.load()
            except (OSError, ValueError, self._Image.DecompressionBombError) as e:
                raise ThumbnailError(f"Cannot decode image {path}: {e}") from e
            yield image
        finally:
            image.close()

    def with_image(self, path: str, fn: Callable[[Any], T]) -> T:
        with self.open_image(path) as image:
            return fn(image)

    def dimensions(self, handle: Any) -> tuple[int, int]:
        return handle.size

    def output_format(self, handle: Any) -> str:
        return handle.format or "PNG"

    def strip_metadata(self, handle: Any) -> Any:
        """Copy of ``handle`` upright and without EXIF/ICC/XMP data."""
        image = self._ImageOps.exif_transpose(handle)
        if image is handle:
            image = handle.copy()
        image.info = {k: v for k, v in handle.info.items() if k not in _PROFILE_KEYS}
        return image

    def resize(self, handle: Any, geometry: Geometry, *, keep_profile: bool = False) -> bytes:
        source = handle if keep_profile else self.strip_metadata(handle)
        target = geometry.target_size(*source.size)
        try:
            resized = source.resize(target, self._Image.Resampling.LANCZOS)
        except (OSError, ValueError) as e:
            raise ThumbnailError(f"Cannot resize to {geometry}: {e}") from e
        finally:
            if source is not handle:
                source.close()

        fmt = self.output_format(handle)
        save_kwargs: dict[str, Any] = {"format": fmt}
        if keep_profile:
            for key in ("exif", "icc_profile"):
                if handle.info.get(key):
                    save_kwargs[key] = handle.info[key]
        if fmt == "JPEG":
            if resized.mode not in ("RGB", "L", "CMYK"):
                resized = resized.convert("RGB")
            save_kwargs.update(quality=85, optimize=True)
        elif fmt == "GIF" and "transparency" in handle.info:
            save_kwargs["transparency"] = handle.info["transparency"]

        buffer = io.BytesIO()
        try:
            resized.save(buffer, **save_kwargs)
        except (OSError, ValueError, KeyError) as e:
            raise ThumbnailError(f"Cannot encode {fmt} output: {e}") from e
        finally:
            resized.close()

        logger.debug(f"Pillow resized {handle.size} -> {target} ({fmt}, {buffer.tell()} bytes)")
        return buffer.getvalue()
