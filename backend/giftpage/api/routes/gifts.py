from fastapi import APIRouter, Response, status

from giftpage.api.deps import EditKeyDep, GiftServiceDep
from giftpage.schemas.gift import (
    GiftCreate,
    GiftCreated,
    GiftListRequest,
    GiftPublic,
    GiftSummary,
    GiftUpdate,
)


router = APIRouter(tags=["gifts"])


@router.post("/gift", response_model=GiftCreated, status_code=status.HTTP_201_CREATED)
async def create_gift(payload: GiftCreate, service: GiftServiceDep) -> GiftCreated:
    return await service.create_gift(payload)


@router.get("/gift/{slug}", response_model=GiftPublic)
async def get_gift(slug: str, service: GiftServiceDep) -> GiftPublic:
    return await service.get_gift(slug)


@router.put("/gift/{slug}", response_model=GiftPublic)
async def update_gift(
    slug: str,
    payload: GiftUpdate,
    service: GiftServiceDep,
    edit_key: EditKeyDep = None,
) -> GiftPublic:
    return await service.update_gift(slug, edit_key, payload)


@router.delete("/gift/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_gift(slug: str, service: GiftServiceDep, edit_key: EditKeyDep = None) -> Response:
    await service.delete_gift(slug, edit_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/gifts/list", response_model=list[GiftSummary])
async def list_gifts(payload: GiftListRequest, service: GiftServiceDep) -> list[GiftSummary]:
    return await service.list_summaries(payload.slugs)
