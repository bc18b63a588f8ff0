"""Shared fixtures: in-memory datastore and backend, a fake image engine."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Optional

import pytest

from attachkit.application.profile import AttachmentProfile
from attachkit.application.ports.hooks import AttachmentHooks
from attachkit.application.use_cases.attachment_lifecycle import AttachmentLifecycle
from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import BackendError, FieldError, StorageKeyNotFoundError, ThumbnailError
from attachkit.domain.geometry import Geometry
from attachkit.domain.options import AttachmentOptions
from attachkit.infrastructure.storage.keys import flat_key


def fake_image(width: int, height: int) -> bytes:
    """Bytes the FakeProcessor decodes as a ``width`` x ``height`` image."""
    return f"FAKEIMG {width}x{height}\n".encode() + b"\x00" * 64


class InMemoryDatastore:
    """Datastore double that records every call in order."""

    def __init__(self):
        self.rows: dict[int, Attachment] = {}
        self.calls: list[tuple[str, object]] = []
        self.reject: list[FieldError] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def commit(self, attachment: Attachment) -> list[FieldError]:
        with self._lock:
            self.calls.append(("commit", attachment.filename))
            if self.reject:
                return list(self.reject)
            if attachment.id is None:
                attachment.id = self._next_id
                self._next_id += 1
            self.rows[attachment.id] = attachment
            return []

    def get(self, identity: int) -> Optional[Attachment]:
        return self.rows.get(identity)

    def find_or_create_child(self, parent_id: int, label: str) -> Attachment:
        with self._lock:
            for row in self.rows.values():
                if row.parent_id == parent_id and row.thumbnail_label == label:
                    return row
        return Attachment(parent_id=parent_id, thumbnail_label=label)

    def children_of(self, parent_id: int) -> list[Attachment]:
        return [row for row in self.rows.values() if row.parent_id == parent_id]

    def delete_row(self, identity: int) -> None:
        with self._lock:
            self.calls.append(("delete_row", identity))
            self.rows.pop(identity, None)


class MemoryBackend:
    """Backend double keeping bytes in a dict and recording writes/deletes."""

    kind = "memory"

    def __init__(self, prefix: str = "attachments"):
        self.prefix = prefix
        self.objects: dict[str, bytes] = {}
        self.writes: list[str] = []
        self.deletes: list[str] = []
        self.fail_writes: set[str] = set()
        self.fail_deletes: set[str] = set()
        self._lock = threading.Lock()

    def key_for(self, attachment: Attachment) -> str:
        return flat_key(self.prefix, attachment)

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        with self._lock:
            self.writes.append(key)
            if key in self.fail_writes:
                raise BackendError(key, "write failed: disk full")
            self.objects[key] = data

    def read(self, key: str) -> bytes:
        try:
            return self.objects[key]
        except KeyError:
            raise StorageKeyNotFoundError(key) from None

    def delete(self, key: str) -> None:
        with self._lock:
            self.deletes.append(key)
            if key in self.fail_deletes:
                raise BackendError(key, "delete failed: permission denied")
            self.objects.pop(key, None)

    def public_locator(self, key: str) -> str:
        return f"https://cdn.example.com/{key}"


class FakeProcessor:
    """Engine double for ``fake_image`` bytes.

    Geometries listed in ``fail_on`` raise a decode error when resizing.
    """

    name = "fake"
    reentrant = True

    def __init__(self, supports_gif_output: bool = True, fail_on: tuple[str, ...] = ()):
        self.supports_gif_output = supports_gif_output
        self.fail_on = set(fail_on)
        self.opened = 0
        self.closed = 0
        self._lock = threading.Lock()

    @contextmanager
    def open_image(self, path):
        with open(path, "rb") as fh:
            header = fh.readline()
        if not header.startswith(b"FAKEIMG "):
            raise ThumbnailError(f"Cannot decode image {path}")
        width, height = (int(n) for n in header.split()[1].split(b"x"))
        with self._lock:
            self.opened += 1
        try:
            yield {"width": width, "height": height}
        finally:
            with self._lock:
                self.closed += 1

    def with_image(self, path, fn):
        with self.open_image(path) as image:
            return fn(image)

    def dimensions(self, handle):
        return handle["width"], handle["height"]

    def strip_metadata(self, handle):
        return dict(handle)

    def resize(self, handle, geometry: Geometry, *, keep_profile: bool = False) -> bytes:
        if str(geometry) in self.fail_on:
            raise ThumbnailError(f"Cannot decode image for {geometry}")
        return fake_image(*geometry.target_size(handle["width"], handle["height"]))


@pytest.fixture
def datastore():
    return InMemoryDatastore()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def make_lifecycle(tmp_path, datastore, backend, processor):
    """Build a lifecycle from option overrides; doubles are shared with the test."""

    def _make(hooks: AttachmentHooks | None = None, engine=None, **overrides) -> AttachmentLifecycle:
        overrides.setdefault("storage", "memory")
        overrides.setdefault("max_size", 100_000)
        options = AttachmentOptions.build(**overrides)
        profile = AttachmentProfile.configure(
            "photos",
            options,
            datastore=datastore,
            hooks=hooks,
            backend=backend,
            processor=engine or processor,
            tempfile_path=tmp_path / "staging",
        )
        return AttachmentLifecycle(profile)

    return _make


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "staging"


def staged_files(directory) -> list:
    return sorted(p for p in directory.iterdir()) if directory.exists() else []


