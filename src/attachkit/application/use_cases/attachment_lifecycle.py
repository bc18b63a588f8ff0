"""Attachment lifecycle: stage, validate, commit, derive, persist, delete."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from attachkit.application.profile import AttachmentProfile
from attachkit.application.staging import Source, TempFileStaging
from attachkit.application.thumbnails import ThumbnailDeriver
from attachkit.application.validator import Validator
from attachkit.domain.entities.attachment import Attachment, LifecycleState
from attachkit.domain.errors import (
    AttachmentError,
    AttachmentNotFoundError,
    BackendError,
    CleanupError,
    FieldError,
    LifecycleError,
    StorageKeyNotFoundError,
    ThumbnailError,
    ValidationError,
)
from attachkit.domain.filenames import thumbnail_name_for

S = LifecycleState

_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    S.NEW: frozenset({S.STAGED, S.INVALID}),
    S.STAGED: frozenset({S.STAGED, S.VALIDATED, S.INVALID, S.DELETED}),
    S.VALIDATED: frozenset({S.COMMITTED, S.INVALID}),
    # Only rows that already have an identity (a failed reprocess) can be destroyed.
    S.INVALID: frozenset({S.DELETED}),
    # Committed without persisted bytes (a failed write) may be retried or removed.
    S.COMMITTED: frozenset({S.PERSISTED, S.STAGED, S.DELETED}),
    S.PERSISTED: frozenset({S.STAGED, S.DELETED}),
    S.DELETED: frozenset(),
}


@dataclass
class LifecycleResult:
    """Outcome of saving one attachment."""

    attachment: Attachment
    errors: list[FieldError] = field(default_factory=list)
    thumbnail_errors: list[ThumbnailError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> Attachment:
        if self.errors:
            raise ValidationError(self.errors)
        return self.attachment


class AttachmentLifecycle:
    """Runs attachments of one record type through their lifecycle.

    Flow for a save:
    1. Recompute size from the current staged source and validate
    2. Process images (``resize_to`` for originals, dimensions, after_resize)
    3. Commit metadata to the datastore (assigns identity)
    4. Derive thumbnails, each saved through this same flow
    5. Write the original's bytes to the backend and clear staging

    Deletion removes thumbnails first, then this attachment's bytes, then its row.
    """

    def __init__(self, profile: AttachmentProfile):
        self.profile = profile
        self.validator = Validator(profile.options)
        self.deriver = ThumbnailDeriver(profile, stage=self.stage, save=self.save)

    # Staging

    def staging_for(self, attachment: Attachment) -> TempFileStaging:
        if attachment.staging is None:
            attachment.staging = TempFileStaging(
                self.profile.tempfile_path,
                filename=attachment.filename,
                persisted=lambda: self._load_persisted(attachment),
            )
        return attachment.staging

    def stage(self, attachment: Attachment, source: Source) -> Path:
        """Stage new bytes; a persisted attachment re-enters ``staged``."""
        self._adopt(attachment)
        path = self.staging_for(attachment).stage(source)
        self._transition(attachment, S.STAGED)
        return path

    def _load_persisted(self, attachment: Attachment) -> Optional[bytes]:
        if attachment.path_id is None or not attachment.filename:
            return None
        try:
            return self.profile.backend.read(self.storage_key(attachment))
        except StorageKeyNotFoundError:
            return None

    # Entry points

    def receive_upload(self, data: Source, content_type: str, filename: str) -> LifecycleResult:
        """Create, stage and save an uploaded file. Empty uploads are not staged."""
        attachment = Attachment(filename=filename, content_type=content_type)
        if self._is_empty(data):
            logger.debug(f"Ignoring empty upload {attachment.filename}")
        else:
            self.stage(attachment, data)
        return self.save(attachment)

    def reprocess(self, attachment: Attachment) -> LifecycleResult:
        """Re-stage stored bytes and run the save flow again, thumbnails included."""
        self._adopt(attachment)
        if attachment.state not in (S.PERSISTED, S.COMMITTED):
            raise LifecycleError(f"Cannot reprocess attachment in state {attachment.state.value}")
        staging = self.staging_for(attachment)
        if staging.current() is None:
            raise StorageKeyNotFoundError(self.storage_key(attachment))
        self._transition(attachment, S.STAGED)
        return self.save(attachment)

    def save(self, attachment: Attachment) -> LifecycleResult:
        if attachment.state not in (S.NEW, S.STAGED):
            raise LifecycleError(f"Cannot save attachment in state {attachment.state.value}")
        staging = self.staging_for(attachment)
        result = LifecycleResult(attachment)

        try:
            attachment.size = staging.size()
            result.errors = self.validator.validate(attachment)
            if result.errors:
                self._transition(attachment, S.INVALID)
                logger.info(f"Rejected {attachment.filename}: {'; '.join(map(str, result.errors))}")
                return result
            self._transition(attachment, S.VALIDATED)

            result.thumbnail_errors.extend(self._process_image(attachment))
            attachment.size = staging.size()

            result.errors = list(self.profile.datastore.commit(attachment))
            if result.errors:
                self._transition(attachment, S.INVALID)
                logger.info(f"Datastore rejected {attachment.filename}: {'; '.join(map(str, result.errors))}")
                return result
            self._transition(attachment, S.COMMITTED)
            logger.info(f"Committed attachment {attachment.id} ({attachment.filename}, {attachment.size} bytes)")

            result.thumbnail_errors.extend(self._persist(attachment, staging))
        finally:
            staging.clear()

        self.profile.hooks.fire("after_attachment_processed", attachment)
        return result

    def _persist(self, attachment: Attachment, staging: TempFileStaging) -> list[ThumbnailError]:
        thumbnail_errors: list[ThumbnailError] = []
        source = staging.current()
        if source is not None and self.deriver.applies_to(attachment):
            thumbnail_errors = self.deriver.derive_all(attachment, source)

        data = staging.read_all()
        if data is None:
            raise LifecycleError(f"Attachment {attachment.id} has no staged bytes to persist")
        key = self.storage_key(attachment)
        self.profile.backend.write(key, data, content_type=attachment.content_type)
        self._transition(attachment, S.PERSISTED)
        logger.info(f"Persisted attachment {attachment.id} to {self.profile.backend.kind}:{key}")

        if attachment.storage_key != key:
            # First persist: record the key so reloaded rows come back persisted.
            attachment.storage_key = key
            errors = self.profile.datastore.commit(attachment)
            if errors:
                logger.warning(
                    f"Could not record storage key of attachment {attachment.id}: {'; '.join(map(str, errors))}"
                )
        return thumbnail_errors

    def _process_image(self, attachment: Attachment) -> list[ThumbnailError]:
        """Resize originals to ``resize_to`` and record dimensions.

        A decode failure is reported but does not block the attachment.
        """
        profile = self.profile
        if not profile.can_process_images or not attachment.is_image:
            return []
        staging = self.staging_for(attachment)
        resize_to = profile.options.resize_to
        try:
            if resize_to is not None and attachment.parent_id is None:
                data = profile.with_image(
                    staging.current(),
                    lambda image: profile.processor.resize(
                        image, resize_to, keep_profile=profile.options.keep_profile
                    ),
                )
                staging.stage(data)

            def measure(image):
                attachment.width, attachment.height = profile.processor.dimensions(image)
                profile.hooks.fire("after_resize", attachment, image)

            profile.with_image(staging.current(), measure)
        except ThumbnailError as e:
            logger.warning(f"Could not process image {attachment.filename}: {e}")
            return [e]
        return []

    # Deletion

    def delete_attachment(self, identity: int) -> None:
        attachment = self.profile.datastore.get(identity)
        if attachment is None:
            raise AttachmentNotFoundError(f"No attachment with id {identity}")
        self.destroy(attachment)

    def destroy(self, attachment: Attachment) -> None:
        """Delete thumbnails, then bytes, then the row.

        Every step is attempted; failures are raised together as :class:`CleanupError`.
        """
        self._adopt(attachment)
        if attachment.state is S.DELETED:
            return
        if attachment.id is None:
            raise LifecycleError("Cannot delete an attachment that was never committed")
        # Reject before any bytes or rows are touched.
        self._check_transition(attachment, S.DELETED)

        failures: list[Exception] = []
        for child in self.profile.datastore.children_of(attachment.id):
            try:
                self.destroy(child)
            except CleanupError as e:
                failures.extend(e.failures)
            except AttachmentError as e:
                failures.append(e)

        try:
            self.profile.backend.delete(self.storage_key(attachment))
        except (BackendError, LifecycleError) as e:
            logger.warning(f"Could not delete bytes of attachment {attachment.id}: {e}")
            failures.append(e)

        try:
            self.profile.datastore.delete_row(attachment.id)
        except AttachmentError as e:
            logger.warning(f"Could not delete row of attachment {attachment.id}: {e}")
            failures.append(e)

        if attachment.staging is not None:
            attachment.staging.clear()
        self._transition(attachment, S.DELETED)
        logger.info(f"Deleted attachment {attachment.id} ({attachment.filename})")

        if failures:
            raise CleanupError(failures)

    # Locators

    def storage_key(self, attachment: Attachment) -> str:
        return attachment.storage_key or self.profile.backend.key_for(attachment)

    def public_url_for(self, attachment: Attachment, label: Optional[str] = None) -> str:
        """Public URL or path of the attachment, or of its ``label`` thumbnail."""
        if label is None:
            return self.profile.backend.public_locator(self.storage_key(attachment))
        if attachment.id is None:
            raise LifecycleError("Cannot locate thumbnails of an attachment that was never committed")
        thumbnail = Attachment(
            filename=thumbnail_name_for(attachment.filename, label, png_for_gif=self.profile.png_for_gif),
            parent_id=attachment.id,
            thumbnail_label=label,
        )
        return self.profile.backend.public_locator(self.profile.backend.key_for(thumbnail))

    # Helpers

    def _check_transition(self, attachment: Attachment, target: LifecycleState) -> None:
        if target not in _TRANSITIONS[attachment.state]:
            raise LifecycleError(
                f"Attachment {attachment.id or attachment.filename}: "
                f"cannot go from {attachment.state.value} to {target.value}"
            )

    def _transition(self, attachment: Attachment, target: LifecycleState) -> None:
        self._check_transition(attachment, target)
        attachment.state = target

    @staticmethod
    def _adopt(attachment: Attachment) -> None:
        # Rows loaded by a host datastore arrive as plain entities.
        if attachment.state is S.NEW and attachment.id is not None:
            attachment.state = S.COMMITTED

    @staticmethod
    def _is_empty(data: Source) -> bool:
        if isinstance(data, (bytes, bytearray)):
            return len(data) == 0
        if isinstance(data, (str, os.PathLike)):
            return not os.path.exists(data) or os.path.getsize(data) == 0
        return False
