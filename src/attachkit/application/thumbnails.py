"""Thumbnail derivation for image originals."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from loguru import logger

from attachkit.application.profile import AttachmentProfile
from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import ThumbnailError
from attachkit.domain.filenames import split_extension, thumbnail_name_for
from attachkit.domain.geometry import Geometry

if TYPE_CHECKING:
    from attachkit.application.use_cases.attachment_lifecycle import LifecycleResult


class ThumbnailDeriver:
    """Derives one child attachment per configured thumbnail label.

    Each child goes through the full lifecycle via ``save``. A failing label
    never stops the others; failures are returned once all labels ran.
    """

    def __init__(
        self,
        profile: AttachmentProfile,
        stage: Callable[[Attachment, bytes], Path],
        save: Callable[[Attachment], "LifecycleResult"],
    ):
        self.profile = profile
        self._stage = stage
        self._save = save

    def applies_to(self, parent: Attachment) -> bool:
        return (
            self.profile.can_process_images
            and len(self.profile.options.thumbnails) > 0
            and parent.is_thumbnailable
            and parent.parent_id is None
            and parent.id is not None
        )

    def derive_all(self, parent: Attachment, source: Path) -> list[ThumbnailError]:
        if not self.applies_to(parent):
            return []

        spec = list(self.profile.options.thumbnails)
        workers = min(self.profile.options.thumbnail_workers, len(spec))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="thumbnail") as pool:
                outcomes = list(pool.map(lambda item: self._derive_safely(parent, source, *item), spec))
        else:
            outcomes = [self._derive_safely(parent, source, label, geometry) for label, geometry in spec]

        errors = [e for e in outcomes if e is not None]
        if errors:
            logger.warning(f"{len(errors)} of {len(spec)} thumbnail(s) failed for attachment {parent.id}")
        return errors

    def _derive_safely(
        self, parent: Attachment, source: Path, label: str, geometry: Geometry
    ) -> ThumbnailError | None:
        try:
            self.derive(parent, source, label, geometry)
        except ThumbnailError as e:
            if e.label is None:
                e = ThumbnailError(str(e), label=label)
            logger.warning(f"Attachment {parent.id}: {e}")
            return e
        except Exception as e:
            # Host hooks and engines may raise anything; siblings must still run.
            logger.warning(f"Attachment {parent.id}: thumbnail '{label}' failed: {type(e).__name__}: {e}")
            error = ThumbnailError(str(e) or type(e).__name__, label=label)
            error.__cause__ = e
            return error
        return None

    def derive(self, parent: Attachment, source: Path, label: str, geometry: Geometry) -> Attachment:
        """Create or update the ``label`` thumbnail of ``parent``.

        The child's staged bytes are released even when the hook or the
        save fails before the child's own lifecycle clears them.
        """
        profile = self.profile
        data = profile.with_image(
            source,
            lambda image: profile.processor.resize(image, geometry, keep_profile=profile.options.keep_profile),
        )

        child = profile.datastore.find_or_create_child(parent.id, label)
        child.parent_id = parent.id
        child.thumbnail_label = label
        child.filename = thumbnail_name_for(parent.filename, label, png_for_gif=profile.png_for_gif)
        if split_extension(child.filename)[1] != split_extension(parent.filename)[1]:
            child.content_type = "image/png"
        else:
            child.content_type = parent.content_type

        try:
            self._stage(child, data)
            profile.hooks.fire("before_thumbnail_saved", child)
            result = self._save(child)
        finally:
            if child.staging is not None:
                child.staging.clear()

        if not result.ok:
            raise ThumbnailError("; ".join(str(e) for e in result.errors), label=label)
        logger.info(f"Saved thumbnail '{label}' ({child.filename}) for attachment {parent.id}")
        return child
