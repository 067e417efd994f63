"""Payment evidence storage and signed URL resolution."""

from __future__ import annotations

import logging
import mimetypes
import secrets
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..utils.datetime import epoch_millis
from .exceptions import OrderRuleViolation

logger = logging.getLogger(__name__)

DEFAULT_URL_TTL_SECONDS = 3600


class ObjectStorage(Protocol):
    """Object storage collaborator holding proof images."""

    def put(self, key: str, data: bytes, content_type: str) -> str:
        ...

    def sign_url(self, key: str, ttl_seconds: int) -> str:
        ...


class StorageError(Exception):
    """Raised by storage backends when a put or sign request fails."""


class S3ObjectStorage:
    """ObjectStorage backed by an S3-compatible bucket (AWS S3, Cloudflare R2)."""

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region_name: str = "auto",
        client=None,
    ) -> None:
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
            endpoint_url=endpoint_url,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        return cls(
            settings.storage_bucket,
            endpoint_url=settings.storage_endpoint_url,
            access_key_id=settings.storage_access_key_id,
            secret_access_key=settings.storage_secret_access_key,
            region_name=settings.storage_region,
        )

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"put {key} failed: {exc}") from exc
        return key

    def sign_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"signing {key} failed: {exc}") from exc


def is_storage_key(ref: Optional[str]) -> bool:
    """True when ``ref`` is a bare storage key rather than a URL or path."""

    return bool(ref) and not ref.startswith("http") and not ref.startswith("/")


def resolve_evidence_url(
    storage: ObjectStorage,
    ref: Optional[str],
    ttl_seconds: int = DEFAULT_URL_TTL_SECONDS,
) -> Optional[str]:
    """Turn a stored evidence reference into something a client can display.

    Keys are exchanged for a time-boxed signed URL. References that already
    look like URLs pass through untouched. A signing failure never fails the
    read: the raw key is returned instead and the failure is logged.
    """

    if not is_storage_key(ref):
        return ref
    try:
        return storage.sign_url(ref, ttl_seconds)
    except Exception:
        logger.warning("could not sign evidence url for %s", ref, exc_info=True)
        return ref


def build_evidence_key(content_type: str, prefix: str = "payments/") -> str:
    extension = mimetypes.guess_extension(content_type or "") or ".bin"
    return f"{prefix}{epoch_millis()}-{secrets.token_hex(4)}{extension}"


def store_evidence(
    storage: ObjectStorage,
    data: bytes,
    content_type: str,
    *,
    prefix: str = "payments/",
) -> str:
    """Upload proof bytes and return the key to keep on the order."""

    if not data:
        raise OrderRuleViolation.validation("Payment screenshot is required.")

    key = build_evidence_key(content_type, prefix)
    try:
        return storage.put(key, data, content_type or "application/octet-stream")
    except Exception as exc:
        logger.exception("evidence upload failed for %s", key)
        raise OrderRuleViolation.storage_failure(f"Upload failed: {exc}") from exc
