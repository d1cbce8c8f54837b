import os

import pytest

# Set environment variables BEFORE importing app modules
os.environ["GIFT_STORE_BACKEND"] = "memory"
os.environ["S3_ENDPOINT_URL"] = "https://storage.test"
os.environ["S3_ACCESS_KEY_ID"] = "test-access-key"
os.environ["S3_SECRET_ACCESS_KEY"] = "test-secret-key"
os.environ["S3_BUCKET_NAME"] = "gifts-test"
os.environ["S3_PUBLIC_URL"] = "https://cdn.gifts.test"
os.environ["GEMINI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from giftpage.api.deps import get_gift_service
from giftpage.main import app
from giftpage.services.gifts import GiftService
from giftpage.storage.blobs import BlobDeleteReport, PresignedUpload, key_from_public_url, upload_key_for
from giftpage.storage.records import InMemoryGiftStore


PUBLIC_BASE = "https://cdn.gifts.test"


class FakeBlobStore:
    """Records every delete call; keys listed in ``fail_keys`` report an error."""

    def __init__(self, public_base_url: str = PUBLIC_BASE) -> None:
        self.public_base_url = public_base_url
        self.objects: set[str] = set()
        self.delete_calls: list[set[str]] = []
        self.fail_keys: set[str] = set()

    def key_for_url(self, url: str) -> str | None:
        return key_from_public_url(url, self.public_base_url)

    def add(self, url: str) -> str:
        key = self.key_for_url(url)
        assert key is not None
        self.objects.add(key)
        return url

    async def presign_upload(self, filename: str, content_type: str) -> PresignedUpload:
        key = upload_key_for(filename)
        return PresignedUpload(
            upload_url=f"https://storage.test/gifts-test/{key}?X-Amz-Signature=fake",
            public_url=f"{self.public_base_url}/{key}",
            key=key,
        )

    async def delete_objects(self, keys: set[str]) -> BlobDeleteReport:
        self.delete_calls.append(set(keys))
        report = BlobDeleteReport()
        for key in sorted(keys):
            if key in self.fail_keys:
                report.errors[key] = "InternalError"
                continue
            self.objects.discard(key)
            report.deleted.append(key)
        return report


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def records() -> InMemoryGiftStore:
    return InMemoryGiftStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def service(records, blob_store) -> GiftService:
    return GiftService(records, blob_store)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_gift_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(service):
    app.dependency_overrides[get_gift_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
