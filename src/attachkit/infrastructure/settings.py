"""Attachment settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from attachkit.domain.options import DEFAULT_PROCESSORS, MEGABYTE, AttachmentOptions


class Settings(BaseSettings):
    """Attachment settings loaded from ``ATTACHKIT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ATTACHKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "attachkit"
    log_level: str = "INFO"

    # Record type
    table_name: str = "attachments"
    tempfile_path: str = "tmp/attachkit"

    # Validation
    content_types: Annotated[list[str] | None, NoDecode] = None
    min_size: int = 1
    max_size: int = MEGABYTE

    # Processing
    thumbnails: dict[str, Any] = Field(default_factory=dict)
    resize_to: str | None = None
    processor: str | None = None
    processors: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_PROCESSORS))
    keep_profile: bool = False
    thumbnail_workers: int = 1

    # Storage
    storage: str | None = None
    path_prefix: str | None = None
    base_url: str = "/"
    storage_root: str = "."
    public_root: str = "public"
    db_path: str = "data/attachments.db"

    # S3
    s3_endpoint: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key: SecretStr | None = None
    s3_secret_key: SecretStr | None = None
    s3_bucket: str | None = None
    s3_use_ssl: bool = True
    s3_force_path_style: bool = False
    s3_access: str = "public-read"
    cloudfront: bool = False
    cloudfront_domain: str | None = None

    @field_validator("content_types", "processors", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @computed_field
    @property
    def storage_connection(self) -> dict[str, Any]:
        """Backend connection details passed through to the storage factory."""
        return {
            "root": self.storage_root,
            "public_root": self.public_root,
            "db_path": self.db_path,
            "endpoint": self.s3_endpoint,
            "region": self.s3_region,
            "access_key": self.s3_access_key.get_secret_value() if self.s3_access_key else None,
            "secret_key": self.s3_secret_key.get_secret_value() if self.s3_secret_key else None,
            "use_ssl": self.s3_use_ssl,
            "force_path_style": self.s3_force_path_style,
        }

    def to_options(self) -> AttachmentOptions:
        """Build validated options; raises ``ConfigurationError``."""
        return AttachmentOptions.build(
            table_name=self.table_name,
            storage=self.storage,
            path_prefix=self.path_prefix,
            bucket=self.s3_bucket,
            s3_access=self.s3_access,
            cloudfront=self.cloudfront,
            cloudfront_domain=self.cloudfront_domain,
            base_url=self.base_url,
            connection=self.storage_connection,
            min_size=self.min_size,
            max_size=self.max_size,
            content_type=self.content_types,
            thumbnails=self.thumbnails,
            resize_to=self.resize_to,
            processor=self.processor,
            processors=self.processors,
            keep_profile=self.keep_profile,
            thumbnail_workers=self.thumbnail_workers,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
