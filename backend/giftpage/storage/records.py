"""Key-value persistence for gift records, keyed by slug.

Three interchangeable backends implement ``GiftRecordStore``:

* ``RedisGiftStore``: one JSON string per slug, ``SET NX`` for creation.
* ``SqlGiftStore``: one row per slug, primary-key insert for creation.
* ``InMemoryGiftStore``: a dict, for local development and tests.

All of them raise ``RecordStoreError`` when the backing store fails; a missing
slug is never an error at this layer (``get`` returns ``None``).
"""

import asyncio
import logging
from datetime import timezone
from typing import Protocol

import redis.asyncio as redis
from pydantic import ValidationError as SchemaError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from giftpage.core.errors import RecordStoreError
from giftpage.models.models import GiftRow
from giftpage.schemas.gift import GiftRecord


logger = logging.getLogger("giftpage.records")


class GiftRecordStore(Protocol):
    async def get(self, slug: str) -> GiftRecord | None: ...

    async def get_many(self, slugs: list[str]) -> list[GiftRecord]: ...

    async def create(self, record: GiftRecord) -> bool:
        """Persist ``record`` only if its slug is unused. Returns False on collision."""
        ...

    async def put(self, record: GiftRecord) -> None: ...

    async def delete(self, slug: str) -> None: ...

    async def close(self) -> None: ...


def _dump(record: GiftRecord) -> str:
    return record.model_dump_json(by_alias=True)


def _load(slug: str, raw: str) -> GiftRecord:
    try:
        return GiftRecord.model_validate_json(raw)
    except SchemaError as exc:
        logger.error("Stored gift is unreadable slug=%s error=%s", slug, exc)
        raise RecordStoreError(f"Stored gift {slug!r} is corrupt") from exc


class RedisGiftStore:
    def __init__(self, redis_dsn: str, key_prefix: str = "gift:", client: redis.Redis | None = None) -> None:
        self._redis_dsn = redis_dsn
        self._key_prefix = key_prefix
        self._redis: redis.Redis | None = client
        self._connect_lock = asyncio.Lock()

    def _key(self, slug: str) -> str:
        return f"{self._key_prefix}{slug}"

    async def _get_redis(self) -> redis.Redis:
        if self._redis is not None:
            return self._redis
        async with self._connect_lock:
            if self._redis is None:
                self._redis = redis.from_url(
                    self._redis_dsn,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                    retry_on_timeout=True,
                    health_check_interval=30,
                )
                logger.info("RedisGiftStore connected redis=%s", self._redis_dsn)
        return self._redis

    async def get(self, slug: str) -> GiftRecord | None:
        try:
            client = await self._get_redis()
            raw = await client.get(self._key(slug))
        except redis.RedisError as exc:
            logger.error("RedisGiftStore get failed slug=%s error=%s", slug, exc)
            raise RecordStoreError() from exc
        if raw is None:
            return None
        return _load(slug, raw)

    async def get_many(self, slugs: list[str]) -> list[GiftRecord]:
        if not slugs:
            return []
        try:
            client = await self._get_redis()
            values = await client.mget([self._key(slug) for slug in slugs])
        except redis.RedisError as exc:
            logger.error("RedisGiftStore mget failed count=%s error=%s", len(slugs), exc)
            raise RecordStoreError() from exc
        return [_load(slug, raw) for slug, raw in zip(slugs, values) if raw is not None]

    async def create(self, record: GiftRecord) -> bool:
        try:
            client = await self._get_redis()
            created = await client.set(self._key(record.slug), _dump(record), nx=True)
        except redis.RedisError as exc:
            logger.error("RedisGiftStore create failed slug=%s error=%s", record.slug, exc)
            raise RecordStoreError() from exc
        return bool(created)

    async def put(self, record: GiftRecord) -> None:
        try:
            client = await self._get_redis()
            await client.set(self._key(record.slug), _dump(record))
        except redis.RedisError as exc:
            logger.error("RedisGiftStore put failed slug=%s error=%s", record.slug, exc)
            raise RecordStoreError() from exc

    async def delete(self, slug: str) -> None:
        try:
            client = await self._get_redis()
            await client.delete(self._key(slug))
        except redis.RedisError as exc:
            logger.error("RedisGiftStore delete failed slug=%s error=%s", slug, exc)
            raise RecordStoreError() from exc

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def _row_to_record(row: GiftRow) -> GiftRecord:
    created_at = row.created_at
    # sqlite drops the tzinfo on read
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return GiftRecord(
        slug=row.slug,
        recipient_name=row.recipient_name,
        greeting=row.greeting or "",
        message=row.message or "",
        images=list(row.images or []),
        created_at=created_at,
        edit_key=row.edit_key,
    )


def _apply_record(row: GiftRow, record: GiftRecord) -> None:
    row.recipient_name = record.recipient_name
    row.greeting = record.greeting
    row.message = record.message
    row.images = list(record.images)


class SqlGiftStore:
    def __init__(self, session_factory: async_sessionmaker, engine: AsyncEngine | None = None) -> None:
        self._session_factory = session_factory
        self._engine = engine

    async def get(self, slug: str) -> GiftRecord | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(GiftRow, slug)
        except SQLAlchemyError as exc:
            logger.error("SqlGiftStore get failed slug=%s error=%s", slug, exc)
            raise RecordStoreError() from exc
        return _row_to_record(row) if row is not None else None

    async def get_many(self, slugs: list[str]) -> list[GiftRecord]:
        if not slugs:
            return []
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(GiftRow).where(GiftRow.slug.in_(slugs)))
                rows = {row.slug: row for row in result.scalars()}
        except SQLAlchemyError as exc:
            logger.error("SqlGiftStore get_many failed count=%s error=%s", len(slugs), exc)
            raise RecordStoreError() from exc
        return [_row_to_record(rows[slug]) for slug in slugs if slug in rows]

    async def create(self, record: GiftRecord) -> bool:
        row = GiftRow(slug=record.slug, created_at=record.created_at, edit_key=record.edit_key)
        _apply_record(row, record)
        try:
            async with self._session_factory() as session:
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return False
        except SQLAlchemyError as exc:
            logger.error("SqlGiftStore create failed slug=%s error=%s", record.slug, exc)
            raise RecordStoreError() from exc
        return True

    async def put(self, record: GiftRecord) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(GiftRow, record.slug)
                if row is None:
                    row = GiftRow(slug=record.slug, created_at=record.created_at, edit_key=record.edit_key)
                    session.add(row)
                _apply_record(row, record)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("SqlGiftStore put failed slug=%s error=%s", record.slug, exc)
            raise RecordStoreError() from exc

    async def delete(self, slug: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(GiftRow).where(GiftRow.slug == slug))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("SqlGiftStore delete failed slug=%s error=%s", slug, exc)
            raise RecordStoreError() from exc

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


class InMemoryGiftStore:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, slug: str) -> GiftRecord | None:
        raw = self._items.get(slug)
        return _load(slug, raw) if raw is not None else None

    async def get_many(self, slugs: list[str]) -> list[GiftRecord]:
        return [_load(slug, self._items[slug]) for slug in slugs if slug in self._items]

    async def create(self, record: GiftRecord) -> bool:
        async with self._lock:
            if record.slug in self._items:
                return False
            self._items[record.slug] = _dump(record)
        return True

    async def put(self, record: GiftRecord) -> None:
        self._items[record.slug] = _dump(record)

    async def delete(self, slug: str) -> None:
        self._items.pop(slug, None)

    async def close(self) -> None:
        return None
