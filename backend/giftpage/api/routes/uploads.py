import logging

from fastapi import APIRouter

from giftpage.api.deps import GiftServiceDep
from giftpage.core.errors import ValidationError
from giftpage.schemas.gift import UploadUrlRequest, UploadUrlResponse


logger = logging.getLogger("giftpage.routes.uploads")

router = APIRouter(tags=["uploads"])


@router.post("/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(payload: UploadUrlRequest, service: GiftServiceDep) -> UploadUrlResponse:
    filename = payload.filename.strip()
    content_type = payload.content_type.strip()
    if not filename or not content_type:
        raise ValidationError("Filename and contentType are required")

    upload = await service.blobs.presign_upload(filename, content_type)
    logger.info("Upload URL issued key=%s content_type=%s", upload.key, content_type)
    return UploadUrlResponse(upload_url=upload.upload_url, public_url=upload.public_url)
