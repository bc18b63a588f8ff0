"""S3-compatible object storage backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from attachkit.domain.entities.attachment import Attachment
from attachkit.domain.errors import BackendError, StorageKeyNotFoundError
from attachkit.domain.options import StorageConfig
from attachkit.infrastructure.storage.keys import flat_key

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class S3StoreConfig:
    endpoint: Optional[str]
    region: str
    access_key: Optional[str]
    secret_key: Optional[str]
    bucket: str
    use_ssl: bool = True
    force_path_style: bool = False

    @classmethod
    def from_storage(cls, config: StorageConfig) -> "S3StoreConfig":
        conn: Mapping[str, Any] = config.connection
        return cls(
            endpoint=conn.get("endpoint"),
            region=conn.get("region", "us-east-1"),
            access_key=conn.get("access_key"),
            secret_key=conn.get("secret_key"),
            bucket=config.bucket,
            use_ssl=conn.get("use_ssl", True),
            force_path_style=conn.get("force_path_style", False),
        )


class S3Backend:
    """Stores bytes as objects ``<prefix>/<id>/<filename>`` in one bucket.

    Objects are written with the configured canned ACL. Public URLs go
    through the CloudFront domain when one is enabled.
    """

    kind = "s3"

    def __init__(self, config: StorageConfig, client: Any = None):
        self.config = config
        self.cfg = S3StoreConfig.from_storage(config)
        if client is None:
            s3_cfg = Config(s3={"addressing_style": "path"} if self.cfg.force_path_style else {})
            client = boto3.client(
                "s3",
                endpoint_url=self.cfg.endpoint,
                aws_access_key_id=self.cfg.access_key,
                aws_secret_access_key=self.cfg.secret_key,
                region_name=self.cfg.region,
                use_ssl=self.cfg.use_ssl,
                config=s3_cfg,
            )
        self.client = client

    def key_for(self, attachment: Attachment) -> str:
        return flat_key(self.config.path_prefix, attachment)

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        params: dict[str, Any] = {
            "Bucket": self.cfg.bucket,
            "Key": key,
            "Body": data,
            "ACL": self.config.access,
        }
        if content_type:
            params["ContentType"] = content_type
        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 put_object failed for {key}: {e}")
            raise BackendError(key, f"write failed: {e}") from e
        logger.debug(f"Uploaded {len(data)} bytes to s3://{self.cfg.bucket}/{key}")

    def read(self, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=self.cfg.bucket, Key=key)
            return resp["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise StorageKeyNotFoundError(key) from None
            raise BackendError(key, f"read failed: {e}") from e
        except BotoCoreError as e:
            raise BackendError(key, f"read failed: {e}") from e

    def delete(self, key: str) -> None:
        # S3 reports success for absent keys.
        try:
            self.client.delete_object(Bucket=self.cfg.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return
            logger.error(f"S3 delete_object failed for {key}: {e}")
            raise BackendError(key, f"delete failed: {e}") from e
        except BotoCoreError as e:
            raise BackendError(key, f"delete failed: {e}") from e

    def public_locator(self, key: str) -> str:
        scheme = "https" if self.cfg.use_ssl else "http"
        if self.config.cloudfront and self.config.cloudfront_domain:
            return f"{scheme}://{self.config.cloudfront_domain}/{key}"
        endpoint = self.cfg.endpoint or f"{scheme}://s3.{self.cfg.region}.amazonaws.com"
        return f"{endpoint.rstrip('/')}/{self.cfg.bucket}/{key}"
