"""libvips image processing engine (optional ``vips`` extra)."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from loguru import logger

from attachkit.domain.errors import ThumbnailError
from attachkit.domain.geometry import Geometry

T = TypeVar("T")

_PROFILE_FIELDS = ("exif-data", "icc-profile-data", "xmp-data", "iptc-data")

# Loader name prefix -> output suffix. GIF sources are written as PNG.
_SUFFIXES = {
    "jpeg": ".jpg",
    "png": ".png",
    "gif": ".png",
    "webp": ".webp",
    "tiff": ".tif",
}


class VipsProcessor:
    """Engine backed by pyvips. Cannot write GIF thumbnails."""

    name = "vips"
    supports_gif_output = False
    reentrant = True

    def __init__(self) -> None:
        # ImportError, or OSError when libvips itself is missing
        import pyvips

        self._pyvips = pyvips

    @contextmanager
    def open_image(self, path: str) -> Iterator[Any]:
        try:
            image = self._pyvips.Image.new_from_file(str(path))
            # Force a decode so corrupt files fail here, not mid-resize.
            image.avg()
        except self._pyvips.Error as e:
            raise ThumbnailError(f"Cannot decode image {path}: {e.message}") from e
        try:
            yield image
        finally:
            # pyvips releases pixel buffers when the last reference goes.
            del image

    def with_image(self, path: str, fn: Callable[[Any], T]) -> T:
        with self.open_image(path) as image:
            return fn(image)

    def dimensions(self, handle: Any) -> tuple[int, int]:
        return handle.width, handle.height

    def output_suffix(self, handle: Any) -> str:
        try:
            loader = handle.get("vips-loader")
        except self._pyvips.Error:
            return ".png"
        for prefix, suffix in _SUFFIXES.items():
            if loader.startswith(prefix):
                return suffix
        return ".png"

    def strip_metadata(self, handle: Any) -> Any:
        image = handle.copy()
        for name in _PROFILE_FIELDS:
            if name in handle.get_fields():
                image.remove(name)
        return image

    def resize(self, handle: Any, geometry: Geometry, *, keep_profile: bool = False) -> bytes:
        source = handle if keep_profile else self.strip_metadata(handle)
        width, height = geometry.target_size(handle.width, handle.height)
        suffix = self.output_suffix(handle)
        try:
            resized = source.resize(width / handle.width, vscale=height / handle.height)
            data = resized.write_to_buffer(suffix, strip=not keep_profile)
        except self._pyvips.Error as e:
            raise ThumbnailError(f"Cannot resize to {geometry}: {e.message}") from e

        logger.debug(f"vips resized {handle.width}x{handle.height} -> {width}x{height} ({suffix})")
        return data
