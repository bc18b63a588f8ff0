"""Tests for AttachmentProfile configuration and extension."""

from unittest.mock import patch

import pytest

from attachkit import AttachmentLifecycle, AttachmentProfile
from attachkit.domain.options import AttachmentOptions
from attachkit.infrastructure.imaging import PROCESSORS
from attachkit.infrastructure.storage import BACKENDS
from conftest import FakeProcessor, MemoryBackend, fake_image


@pytest.fixture
def memory_backends():
    with patch.dict(BACKENDS, {"memory": lambda config: MemoryBackend(config.path_prefix)}):
        yield


def _unavailable():
    raise ImportError("No module named 'imaginary'")


class TestConfigure:
    def test_backend_and_processor_resolved_once(self, datastore, memory_backends):
        options = AttachmentOptions.build(storage="memory", path_prefix="photos")

        profile = AttachmentProfile.configure("photos", options, datastore=datastore)

        assert profile.backend.prefix == "photos"
        assert profile.processor.name == "pillow"

    def test_png_for_gif_follows_engine(self, datastore, backend):
        options = AttachmentOptions.build(storage="memory")

        gif = AttachmentProfile.configure("a", options, datastore=datastore, backend=backend, processor=FakeProcessor())
        no_gif = AttachmentProfile.configure(
            "b", options, datastore=datastore, backend=backend, processor=FakeProcessor(supports_gif_output=False)
        )

        assert not gif.png_for_gif
        assert no_gif.png_for_gif

    def test_without_engine_images_are_stored_unprocessed(self, datastore, backend, tmp_path):
        options = AttachmentOptions.build(storage="memory", thumbnails={"thumb": [50, 50]}, processors=["broken"])
        with patch.dict(PROCESSORS, {"broken": _unavailable}):
            profile = AttachmentProfile.configure(
                "photos", options, datastore=datastore, backend=backend, tempfile_path=tmp_path
            )

        result = AttachmentLifecycle(profile).receive_upload(fake_image(64, 64), "image/png", "photo.png")

        assert not profile.can_process_images
        assert result.ok
        assert result.attachment.width is None
        assert backend.writes == ["attachments/1/photo.png"]
        with pytest.raises(RuntimeError):
            profile.with_image(tmp_path / "any.png", lambda image: image)


class TestExtend:
    def test_extend_keeps_processor_and_backend(self, datastore, backend, processor):
        parent = AttachmentProfile.configure(
            "photos",
            AttachmentOptions.build(storage="memory", content_type="image", thumbnails={"thumb": [50, 50]}),
            datastore=datastore,
            backend=backend,
            processor=processor,
        )

        child = parent.extend("avatars", thumbnails={"small": "20x20"})

        assert child.name == "avatars"
        assert child.processor is processor
        assert child.backend is backend
        assert child.options.thumbnails.labels == ["small"]
        assert child.options.content_types == parent.options.content_types
        assert parent.options.thumbnails.labels == ["thumb"]

    def test_extend_with_new_storage_builds_backend(self, datastore, processor, memory_backends):
        parent = AttachmentProfile.configure(
            "photos",
            AttachmentOptions.build(storage="memory", path_prefix="photos"),
            datastore=datastore,
            processor=processor,
        )

        child = parent.extend("avatars", path_prefix="avatars")

        assert child.backend is not parent.backend
        assert child.backend.prefix == "avatars"
        assert child.processor is processor
