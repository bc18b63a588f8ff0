from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Callable, Protocol, TypeVar

from attachkit.domain.geometry import Geometry

T = TypeVar("T")


class ImageProcessor(Protocol):
    """Decode, measure and resize images.

    ``open_image`` raises :class:`~attachkit.domain.errors.ThumbnailError`
    when the bytes cannot be decoded, and always releases the handle.
    """

    name: str
    supports_gif_output: bool
    reentrant: bool

    def open_image(self, path: str) -> AbstractContextManager[Any]: ...
    def with_image(self, path: str, fn: Callable[[Any], T]) -> T: ...
    def dimensions(self, handle: Any) -> tuple[int, int]: ...
    def resize(self, handle: Any, geometry: Geometry, *, keep_profile: bool = False) -> bytes: ...
    def strip_metadata(self, handle: Any) -> Any: ...
