"""Temporary byte sources held for an attachment until it is persisted."""

from __future__ import annotations

import os
import random
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from loguru import logger

from attachkit.domain.filenames import sanitize_filename

Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


@dataclass(frozen=True)
class StagedSource:
    """A staged file; ``owned`` files were created here and are deleted on clear."""

    path: Path
    owned: bool


class TempFileStaging:
    """Most-recent-first list of byte sources for one attachment.

    Raw bytes and streams are materialized into uniquely named files under
    ``tempfile_path``. Paths handed in by the caller are used as-is and never
    deleted. When nothing is staged, :meth:`current` falls back to a copy of
    the attachment's persisted bytes, so a stored attachment can be processed
    again without a fresh upload.
    """

    def __init__(
        self,
        tempfile_path: str | os.PathLike,
        filename: Optional[str] = None,
        persisted: Optional[Callable[[], Optional[bytes]]] = None,
    ):
        self.tempfile_path = Path(tempfile_path)
        self.filename = filename
        self._persisted = persisted
        self._sources: list[StagedSource] = []

    def __len__(self) -> int:
        return len(self._sources)

    def __enter__(self) -> "TempFileStaging":
        return self

    def __exit__(self, *exc) -> None:
        self.clear()

    @property
    def sources(self) -> list[StagedSource]:
        return list(self._sources)

    def stage(self, source: Source) -> Path:
        """Push a new source to the front and return its path."""
        if isinstance(source, (bytes, bytearray)):
            staged = StagedSource(self._write_temp_file(bytes(source)), owned=True)
        elif isinstance(source, (str, os.PathLike)):
            staged = StagedSource(Path(source), owned=False)
        elif hasattr(source, "read"):
            if hasattr(source, "seek"):
                source.seek(0)
            staged = StagedSource(self._write_temp_file(source.read()), owned=True)
        else:
            raise TypeError(f"Cannot stage {type(source).__name__}")

        self._sources.insert(0, staged)
        logger.debug(f"Staged {staged.path} ({'temp' if staged.owned else 'external'})")
        return staged.path

    def current(self) -> Optional[Path]:
        """Most recently staged path, or a copy of the persisted bytes, or None."""
        if self._sources:
            return self._sources[0].path
        if self._persisted is not None:
            data = self._persisted()
            if data is not None:
                return self.stage(data)
        return None

    def read_all(self) -> Optional[bytes]:
        """Load the full content of :meth:`current` into memory."""
        path = self.current()
        return path.read_bytes() if path is not None else None

    def size(self) -> Optional[int]:
        path = self.current()
        return path.stat().st_size if path is not None and path.is_file() else None

    def clear(self) -> list[OSError]:
        """Drop every source, deleting owned temp files.

        All files are attempted; failures are logged and returned.
        """
        failures: list[OSError] = []
        for staged in self._sources:
            if not staged.owned:
                continue
            try:
                staged.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove temp file {staged.path}: {e}")
                failures.append(e)
        self._sources.clear()
        return failures

    def _random_basename(self) -> str:
        name = sanitize_filename(self.filename) or "attachment"
        return f"{random.randrange(max(1, int(time.time())))}{name}"

    def _new_temp_path(self) -> Path:
        self.tempfile_path.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix=self._random_basename(), dir=self.tempfile_path)
        os.close(fd)
        return Path(path)

    def _write_temp_file(self, data: bytes) -> Path:
        target = self._new_temp_path()
        try:
            target.write_bytes(data)
        except OSError:
            target.unlink(missing_ok=True)
            raise
        return target
