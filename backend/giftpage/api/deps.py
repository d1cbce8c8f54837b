import asyncio
from typing import Annotated
import logging

from fastapi import Depends, Header, Request

from giftpage.core.config import Settings, settings
from giftpage.core.errors import ServiceUnavailableError
from giftpage.db.session import build_engine, build_session_factory, create_schema
from giftpage.services.gifts import GiftService
from giftpage.services.rewrite import MessageRewriter
from giftpage.storage.blobs import S3BlobStore
from giftpage.storage.records import GiftRecordStore, InMemoryGiftStore, RedisGiftStore, SqlGiftStore


logger = logging.getLogger("giftpage.deps")

_service_lock = asyncio.Lock()


async def build_record_store(cfg: Settings) -> GiftRecordStore:
    backend = cfg.gift_store_backend.strip().lower()
    if backend == "sql":
        engine = build_engine(cfg.database_dsn)
        await create_schema(engine)
        return SqlGiftStore(build_session_factory(engine), engine=engine)
    if backend == "memory":
        logger.warning("Using in-memory gift store; records are lost on restart")
        return InMemoryGiftStore()
    return RedisGiftStore(cfg.redis_dsn, key_prefix=cfg.gift_key_prefix)


def build_blob_store(cfg: Settings) -> S3BlobStore:
    return S3BlobStore(
        cfg.s3_bucket_name,
        cfg.s3_public_url,
        endpoint_url=cfg.s3_endpoint,
        region=cfg.s3_region,
        access_key_id=cfg.s3_access_key_id,
        secret_access_key=cfg.s3_secret_access_key,
        presign_expires_seconds=cfg.s3_presign_expires_seconds,
    )


async def build_gift_service(cfg: Settings) -> GiftService:
    records = await build_record_store(cfg)
    return GiftService(records, build_blob_store(cfg), slug_max_length=cfg.slug_max_length)


async def get_gift_service(request: Request) -> GiftService:
    missing = settings.missing_storage_settings()
    if missing:
        logger.critical(
            "Gift storage is not configured; missing=%s path=%s",
            ", ".join(missing),
            request.url.path,
        )
        raise ServiceUnavailableError()

    service = getattr(request.app.state, "gift_service", None)
    if service is not None:
        return service
    async with _service_lock:
        service = getattr(request.app.state, "gift_service", None)
        if service is None:
            service = await build_gift_service(settings)
            request.app.state.gift_service = service
            logger.info(
                "Gift service ready store=%s bucket=%s",
                settings.gift_store_backend,
                settings.s3_bucket_name,
            )
    return service


def get_rewriter(request: Request) -> MessageRewriter:
    rewriter = getattr(request.app.state, "rewriter", None)
    if rewriter is None:
        rewriter = MessageRewriter(settings.gemini_api_key, model=settings.gemini_model)
        request.app.state.rewriter = rewriter
    return rewriter


GiftServiceDep = Annotated[GiftService, Depends(get_gift_service)]
RewriterDep = Annotated[MessageRewriter, Depends(get_rewriter)]
EditKeyDep = Annotated[str | None, Header(alias="X-Edit-Key")]
