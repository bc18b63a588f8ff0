"""Image processing engines and engine selection."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from loguru import logger

from attachkit.application.ports.image_processor import ImageProcessor
from attachkit.domain.errors import ConfigurationError
from attachkit.domain.options import DEFAULT_PROCESSORS
from attachkit.infrastructure.imaging.pillow_processor import PillowProcessor
from attachkit.infrastructure.imaging.vips_processor import VipsProcessor

ProcessorFactory = Callable[[], ImageProcessor]

PROCESSORS: dict[str, ProcessorFactory] = {
    "pillow": PillowProcessor,
    "vips": VipsProcessor,
}


def register_processor(name: str, factory: ProcessorFactory) -> None:
    """Make an engine selectable by name."""
    PROCESSORS[name] = factory


def _load(name: str) -> ImageProcessor:
    try:
        factory = PROCESSORS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown image processor: {name}") from None
    return factory()


def select_processor(
    processor: Optional[str] = None,
    preference: Iterable[str] = DEFAULT_PROCESSORS,
) -> Optional[ImageProcessor]:
    """Resolve the engine for a record type.

    An explicit ``processor`` must load or a :class:`ConfigurationError` is
    raised. Otherwise ``preference`` is probed in order and engines whose
    library is missing are skipped; returns None when none loads.
    """
    if processor:
        try:
            engine = _load(processor)
        except (ImportError, OSError) as e:
            raise ConfigurationError(f"Image processor '{processor}' is not available: {e}") from e
        logger.info(f"Using image processor: {engine.name}")
        return engine

    for name in preference:
        try:
            engine = _load(name)
        except (ImportError, OSError) as e:
            logger.debug(f"Image processor '{name}' unavailable, trying next: {e}")
            continue
        logger.info(f"Using image processor: {engine.name}")
        return engine

    logger.warning("No image processor available; images will not be resized or thumbnailed")
    return None


__all__ = [
    "PROCESSORS",
    "PillowProcessor",
    "VipsProcessor",
    "register_processor",
    "select_processor",
]
