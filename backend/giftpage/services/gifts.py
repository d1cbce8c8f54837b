"""Gift-record service: ownership checks and the create/read/update/delete protocol.

Image blobs are always removed before the record that references them is
rewritten or deleted. If blob cleanup fails the mutation is aborted and both
the record and the remaining blobs are left as they were.
"""

import logging
import random
import re
import secrets
import string
from datetime import datetime, timezone
from uuid import uuid4

from giftpage.core.errors import (
    BlobCleanupError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from giftpage.schemas.gift import GiftCreate, GiftCreated, GiftPublic, GiftRecord, GiftSummary, GiftUpdate
from giftpage.storage.blobs import BlobStore
from giftpage.storage.records import GiftRecordStore


logger = logging.getLogger("giftpage.gifts")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def normalize_slug(raw: str | None) -> str:
    if not raw:
        return ""
    return re.sub(r"[^a-z0-9-]", "", raw.strip().lower())


def generate_slug(recipient_name: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", recipient_name.lower()).strip("-")
    if not base:
        return f"gift-{random.randint(0, 999999):06d}"
    suffix = "".join(random.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{base}-{suffix}"


def mint_edit_key() -> str:
    return str(uuid4())


class GiftService:
    def __init__(self, records: GiftRecordStore, blobs: BlobStore, *, slug_max_length: int = 120) -> None:
        self.records = records
        self.blobs = blobs
        self.slug_max_length = slug_max_length

    async def create_gift(self, payload: GiftCreate) -> GiftCreated:
        recipient_name = payload.recipient_name or ""
        if not recipient_name:
            raise ValidationError("Recipient name is required.")

        slug = normalize_slug(payload.slug)
        if not slug:
            # leave room for the "-xxxx" suffix
            slug = generate_slug(recipient_name[: max(1, self.slug_max_length - 5)])
        if len(slug) > self.slug_max_length:
            raise ValidationError(f"Slug must be at most {self.slug_max_length} characters.")

        record = GiftRecord(
            slug=slug,
            recipient_name=recipient_name,
            greeting=payload.greeting or "",
            message=payload.message or "",
            images=list(payload.images or []),
            created_at=datetime.now(timezone.utc),
            edit_key=mint_edit_key(),
        )
        if not await self.records.create(record):
            logger.info("Create rejected, slug taken slug=%s", slug)
            raise ConflictError(f'Slug "{slug}" already exists.')

        logger.info("Gift created slug=%s images=%s", slug, len(record.images))
        return GiftCreated(slug=record.slug, edit_key=record.edit_key)

    async def get_gift(self, slug: str) -> GiftPublic:
        record = await self.records.get(slug)
        if record is None:
            raise NotFoundError()
        return record.to_public()

    async def list_summaries(self, slugs: list[str]) -> list[GiftSummary]:
        unique = list(dict.fromkeys(s for s in slugs if s))
        if not unique:
            return []
        records = await self.records.get_many(unique)
        logger.debug("Summaries requested=%s found=%s", len(unique), len(records))
        return [record.to_summary() for record in records]

    async def update_gift(self, slug: str, edit_key: str | None, changes: GiftUpdate) -> GiftPublic:
        self._require_key(edit_key)
        record = await self.records.get(slug)
        if record is None:
            raise NotFoundError()
        self._authorize(record, edit_key)

        if changes.recipient_name is not None and not changes.recipient_name:
            raise ValidationError("Recipient name cannot be empty.")

        if changes.images is not None:
            keep = set(changes.images)
            removed = [url for url in record.images if url not in keep]
            await self._delete_images(slug, removed, keep=changes.images)

        updated = record.model_copy(
            update={
                name: value
                for name, value in changes.model_dump(exclude_unset=True).items()
                if value is not None
            }
        )
        await self.records.put(updated)
        logger.info("Gift updated slug=%s images=%s", slug, len(updated.images))
        return updated.to_public()

    async def delete_gift(self, slug: str, edit_key: str | None) -> None:
        self._require_key(edit_key)
        record = await self.records.get(slug)
        if record is None:
            logger.info("Delete of missing gift treated as done slug=%s", slug)
            return
        self._authorize(record, edit_key)

        await self._delete_images(slug, record.images)
        await self.records.delete(slug)
        logger.info("Gift deleted slug=%s", slug)

    def _require_key(self, edit_key: str | None) -> None:
        if not edit_key or not edit_key.strip():
            raise UnauthenticatedError()

    def _authorize(self, record: GiftRecord, edit_key: str | None) -> None:
        if not secrets.compare_digest(record.edit_key.encode(), (edit_key or "").encode()):
            logger.warning("Edit key mismatch slug=%s", record.slug)
            raise ForbiddenError()

    async def _delete_images(self, slug: str, urls: list[str], keep: list[str] | None = None) -> None:
        if not urls:
            return
        # distinct URLs (query string, encoding) can share one object
        kept_keys = {key for key in map(self.blobs.key_for_url, keep or []) if key}
        keys: set[str] = set()
        for url in urls:
            key = self.blobs.key_for_url(url)
            if key is None:
                logger.warning("Skipping image with unusable URL slug=%s url=%s", slug, url)
                continue
            if key in kept_keys:
                logger.info("Keeping object still referenced slug=%s key=%s", slug, key)
                continue
            keys.add(key)
        if not keys:
            return

        report = await self.blobs.delete_objects(keys)
        if report.errors:
            logger.error("Image cleanup failed slug=%s errors=%s", slug, report.errors)
            raise BlobCleanupError(report.errors)
        logger.info("Images removed slug=%s count=%s", slug, len(report.deleted))
