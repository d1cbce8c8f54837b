import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import unquote, urlparse
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from giftpage.core.errors import BlobStoreError


logger = logging.getLogger("giftpage.blobs")

# DeleteObjects accepts at most this many keys per request
_DELETE_BATCH_SIZE = 1000


@dataclass
class BlobDeleteReport:
    deleted: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class PresignedUpload:
    upload_url: str
    public_url: str
    key: str


class BlobStore(Protocol):
    def key_for_url(self, url: str) -> str | None: ...

    async def presign_upload(self, filename: str, content_type: str) -> PresignedUpload: ...

    async def delete_objects(self, keys: set[str]) -> BlobDeleteReport: ...


def upload_key_for(filename: str) -> str:
    """``<uuid>.<ext>``; the extension is sanitized and defaults to jpg."""
    ext = ""
    if "." in filename:
        ext = re.sub(r"[^a-z0-9]", "", filename.rsplit(".", 1)[-1].lower())
    return f"{uuid4()}.{ext or 'jpg'}"


def key_from_public_url(url: str, public_base_url: str = "") -> str | None:
    """Recover the object key from a public URL, or None when it cannot be derived."""
    base = public_base_url.rstrip("/")
    if base and url.startswith(base + "/"):
        key = unquote(url[len(base) + 1:].split("?", 1)[0].split("#", 1)[0])
        return key or None
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    if path.startswith("/"):
        path = path[1:]
    key = unquote(path)
    return key or None


class S3BlobStore:
    """S3-compatible object store (Cloudflare R2 in production)."""

    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        *,
        endpoint_url: str | None = None,
        region: str = "auto",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        presign_expires_seconds: int = 360,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.presign_expires_seconds = presign_expires_seconds
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            config=Config(signature_version="s3v4"),
        )

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_for_url(self, url: str) -> str | None:
        return key_from_public_url(url, self.public_base_url)

    async def presign_upload(self, filename: str, content_type: str) -> PresignedUpload:
        key = upload_key_for(filename)
        try:
            upload_url = await asyncio.to_thread(
                self._client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.presign_expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Presign failed bucket=%s key=%s error=%s", self.bucket, key, exc)
            raise BlobStoreError(f"Could not create upload URL: {exc}") from exc
        return PresignedUpload(upload_url=upload_url, public_url=self.public_url(key), key=key)

    async def delete_objects(self, keys: set[str]) -> BlobDeleteReport:
        report = BlobDeleteReport()
        ordered = sorted(k for k in keys if k)
        for start in range(0, len(ordered), _DELETE_BATCH_SIZE):
            batch = ordered[start:start + _DELETE_BATCH_SIZE]
            try:
                response = await asyncio.to_thread(
                    self._client.delete_objects,
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": False},
                )
            except (BotoCoreError, ClientError) as exc:
                logger.error("DeleteObjects failed bucket=%s count=%s error=%s", self.bucket, len(batch), exc)
                raise BlobStoreError(f"Failed to remove images from storage: {exc}") from exc

            for item in response.get("Errors") or []:
                key = item.get("Key", "")
                report.errors[key] = item.get("Message") or item.get("Code") or "unknown error"
            for key in batch:
                if key not in report.errors:
                    report.deleted.append(key)
        return report
