"""Immutable attachment options resolved once per record type."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from attachkit.domain.content_types import expand_content_types
from attachkit.domain.errors import ConfigurationError
from attachkit.domain.geometry import Geometry

StorageKind = str  # "file_system", "s3", "db_file" or a registered backend

MEGABYTE = 1024 * 1024
DEFAULT_PROCESSORS: tuple[str, ...] = ("pillow", "vips")

_LABEL = re.compile(r"^\w+$")


@dataclass(frozen=True)
class ThumbnailSpec:
    """Ordered mapping of thumbnail label to resize geometry."""

    items: tuple[tuple[str, Geometry], ...] = ()

    @classmethod
    def parse(cls, value: Any) -> "ThumbnailSpec":
        if isinstance(value, ThumbnailSpec):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                f"thumbnails should be a mapping, e.g. {{'thumb': '50x50'}}; got {type(value).__name__}"
            )
        items = []
        for label, geometry in value.items():
            label = str(label)
            if not _LABEL.match(label):
                raise ConfigurationError(f"Invalid thumbnail label {label!r}")
            items.append((label, Geometry.parse(geometry)))
        return cls(items=tuple(items))

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.items]

    def geometry_for(self, label: str) -> Geometry:
        for name, geometry in self.items:
            if name == label:
                return geometry
        raise KeyError(label)

    def __iter__(self) -> Iterator[tuple[str, Geometry]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class StorageConfig:
    """Where and how attachment bytes are stored."""

    kind: StorageKind
    path_prefix: str
    bucket: str | None = None
    access: str = "public-read"
    cloudfront: bool = False
    cloudfront_domain: str | None = None
    base_url: str = "/"
    connection: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class AttachmentOptions:
    """Fully defaulted, validated options for one record type.

    Build with :meth:`build`; derive a subclass' options with :meth:`inherit`.
    """

    table_name: str
    storage: StorageConfig
    size_range: tuple[int, int] = (1, MEGABYTE)
    content_types: frozenset[str] | None = None
    thumbnails: ThumbnailSpec = ThumbnailSpec()
    resize_to: Geometry | None = None
    processor: str | None = None
    processors: tuple[str, ...] = DEFAULT_PROCESSORS
    keep_profile: bool = False
    thumbnail_workers: int = 1

    @classmethod
    def build(
        cls,
        *,
        table_name: str = "attachments",
        storage: StorageKind | None = None,
        path_prefix: str | None = None,
        bucket: str | None = None,
        s3_access: str = "public-read",
        cloudfront: bool = False,
        cloudfront_domain: str | None = None,
        base_url: str = "/",
        connection: Mapping[str, Any] | None = None,
        min_size: int = 1,
        max_size: int = MEGABYTE,
        size: tuple[int, int] | None = None,
        content_type: str | Iterable[str] | None = None,
        thumbnails: Mapping[str, Any] | ThumbnailSpec | None = None,
        resize_to: Any = None,
        processor: str | None = None,
        processors: Iterable[str] | None = None,
        keep_profile: bool = False,
        thumbnail_workers: int = 1,
    ) -> "AttachmentOptions":
        """Apply defaults and validate; raises :class:`ConfigurationError`."""
        low, high = size if size is not None else (min_size, max_size)
        if low < 0 or high < low:
            raise ConfigurationError(f"Invalid size range {low}..{high}")

        if storage is None:
            storage = "file_system" if path_prefix else "db_file"
        if path_prefix is None:
            path_prefix = table_name if storage == "s3" else f"public/{table_name}"
        path_prefix = path_prefix.lstrip("/")

        if storage == "s3" and not bucket:
            raise ConfigurationError("s3 storage requires a bucket")
        if cloudfront and not cloudfront_domain:
            raise ConfigurationError("cloudfront is enabled but no cloudfront_domain is set")
        if thumbnail_workers < 1:
            raise ConfigurationError("thumbnail_workers must be at least 1")

        return cls(
            table_name=table_name,
            storage=StorageConfig(
                kind=storage,
                path_prefix=path_prefix,
                bucket=bucket,
                access=s3_access,
                cloudfront=cloudfront,
                cloudfront_domain=cloudfront_domain,
                base_url=base_url,
                connection=MappingProxyType(dict(connection or {})),
            ),
            size_range=(low, high),
            content_types=expand_content_types(content_type),
            thumbnails=ThumbnailSpec.parse(thumbnails),
            resize_to=Geometry.parse(resize_to) if resize_to is not None else None,
            processor=processor,
            processors=tuple(processors) if processors is not None else DEFAULT_PROCESSORS,
            keep_profile=keep_profile,
            thumbnail_workers=thumbnail_workers,
        )

    def inherit(self, **overrides: Any) -> "AttachmentOptions":
        """Options for a derived record type: these values, then ``overrides``."""
        current: dict[str, Any] = {
            "table_name": self.table_name,
            "storage": self.storage.kind,
            "path_prefix": self.storage.path_prefix,
            "bucket": self.storage.bucket,
            "s3_access": self.storage.access,
            "cloudfront": self.storage.cloudfront,
            "cloudfront_domain": self.storage.cloudfront_domain,
            "base_url": self.storage.base_url,
            "connection": self.storage.connection,
            "size": self.size_range,
            "content_type": self.content_types,
            "thumbnails": self.thumbnails,
            "resize_to": self.resize_to,
            "processor": self.processor,
            "processors": self.processors,
            "keep_profile": self.keep_profile,
            "thumbnail_workers": self.thumbnail_workers,
        }
        if "min_size" in overrides or "max_size" in overrides:
            current.pop("size")
            current.setdefault("min_size", self.size_range[0])
            current.setdefault("max_size", self.size_range[1])
        current.update(overrides)
        return AttachmentOptions.build(**current)

    @property
    def min_size(self) -> int:
        return self.size_range[0]

    @property
    def max_size(self) -> int:
        return self.size_range[1]
