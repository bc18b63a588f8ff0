"""
Tests for the SQLite datastore, plus an end-to-end run against real Pillow and
db_file storage.
"""

import io

import pytest
from PIL import Image

from attachkit import AttachmentLifecycle, AttachmentProfile
from attachkit.domain.entities.attachment import Attachment, LifecycleState
from attachkit.domain.errors import StorageKeyNotFoundError
from attachkit.domain.options import AttachmentOptions
from attachkit.infrastructure.datastore import SQLiteAttachmentRepository


@pytest.fixture
def repo(tmp_path):
    return SQLiteAttachmentRepository(tmp_path / "data" / "attachments.db", table_name="photos")


def _original(**kwargs):
    defaults = {"filename": "photo.jpg", "content_type": "image/jpeg", "size": 10}
    defaults.update(kwargs)
    return Attachment(**defaults)


class TestSQLiteAttachmentRepository:
    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(ValueError):
            SQLiteAttachmentRepository(tmp_path / "a.db", table_name="photos; DROP TABLE x")

    def test_commit_assigns_id(self, repo):
        attachment = _original(width=640, height=480, extra={"alt": "A photo"})

        assert repo.commit(attachment) == []
        assert attachment.id == 1

        loaded = repo.get(1)
        assert loaded.filename == "photo.jpg"
        assert loaded.content_type == "image/jpeg"
        assert (loaded.width, loaded.height) == (640, 480)
        assert loaded.extra == {"alt": "A photo"}
        assert loaded.state is LifecycleState.COMMITTED

    def test_commit_updates_existing_row(self, repo):
        attachment = _original()
        repo.commit(attachment)

        attachment.storage_key = "photos/1/photo.jpg"
        attachment.size = 20
        repo.commit(attachment)

        loaded = repo.get(attachment.id)
        assert loaded.size == 20
        assert loaded.state is LifecycleState.PERSISTED

    def test_get_missing(self, repo):
        assert repo.get(404) is None

    def test_find_or_create_child(self, repo):
        parent = _original()
        repo.commit(parent)

        child = repo.find_or_create_child(parent.id, "thumb")
        assert child.id is None
        assert (child.parent_id, child.thumbnail_label) == (parent.id, "thumb")

        child.filename = "photo_thumb.jpg"
        child.content_type = "image/jpeg"
        child.size = 5
        repo.commit(child)

        again = repo.find_or_create_child(parent.id, "thumb")
        assert again.id == child.id

    def test_label_is_unique_per_parent(self, repo):
        parent = _original()
        repo.commit(parent)
        repo.commit(_original(filename="photo_thumb.jpg", parent_id=parent.id, thumbnail_label="thumb"))

        errors = repo.commit(_original(filename="photo_thumb.jpg", parent_id=parent.id, thumbnail_label="thumb"))

        assert [e.field for e in errors] == ["thumbnail_label"]

    def test_missing_required_column(self, repo):
        errors = repo.commit(Attachment(content_type="image/jpeg", size=1))

        assert [e.field for e in errors] == ["base"]

    def test_children_of(self, repo):
        parent = _original()
        repo.commit(parent)
        for label in ("small", "large"):
            repo.commit(_original(filename=f"photo_{label}.jpg", parent_id=parent.id, thumbnail_label=label))

        assert [c.thumbnail_label for c in repo.children_of(parent.id)] == ["small", "large"]
        assert repo.children_of(999) == []

    def test_delete_row(self, repo):
        attachment = _original()
        repo.commit(attachment)

        repo.delete_row(attachment.id)

        assert repo.get(attachment.id) is None


class TestEndToEnd:
    def test_upload_thumbnail_and_delete(self, tmp_path, repo):
        options = AttachmentOptions.build(
            table_name="photos",
            storage="db_file",
            content_type="image",
            thumbnails={"thumb": "32x32"},
            processor="pillow",
            connection={"db_path": str(tmp_path / "data" / "blobs.db")},
        )
        profile = AttachmentProfile.configure("photos", options, datastore=repo, tempfile_path=tmp_path / "staging")
        lifecycle = AttachmentLifecycle(profile)

        buffer = io.BytesIO()
        Image.new("RGB", (640, 480), "red").save(buffer, format="PNG")
        result = lifecycle.receive_upload(buffer.getvalue(), "image/png", "photo.png")

        assert result.ok
        assert result.thumbnail_errors == []
        parent = result.attachment
        stored = repo.get(parent.id)
        assert stored.state is LifecycleState.PERSISTED
        assert stored.storage_key == profile.backend.key_for(parent)
        children = repo.children_of(parent.id)
        assert [c.filename for c in children] == ["photo_thumb.png"]
        assert (children[0].width, children[0].height) == (32, 24)

        thumb_key = profile.backend.key_for(children[0])
        with Image.open(io.BytesIO(profile.backend.read(thumb_key))) as thumb:
            assert thumb.size == (32, 24)

        lifecycle.delete_attachment(parent.id)

        assert repo.get(parent.id) is None
        assert repo.children_of(parent.id) == []
        with pytest.raises(StorageKeyNotFoundError):
            profile.backend.read(thumb_key)
        assert list((tmp_path / "staging").iterdir()) == []
