"""
HTTP tests for the gift endpoints: status codes, secret stripping, CORS.
"""
import pytest
from fastapi.testclient import TestClient

from giftpage.core.config import settings
from giftpage.main import app


def _create(client: TestClient, **overrides) -> dict:
    payload = {
        "recipientName": "Mom",
        "greeting": "Dear Mom",
        "message": "Thank you",
        "images": ["https://cdn.gifts.test/a.jpg", "https://cdn.gifts.test/b.jpg"],
        "slug": "for-mom",
    }
    payload.update(overrides)
    res = client.post("/gift", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


class TestCreateAndRead:
    def test_create_returns_slug_and_key(self, client):
        data = _create(client)
        assert data["slug"] == "for-mom"
        assert data["editKey"]

    def test_read_hides_edit_key(self, client):
        _create(client)
        res = client.get("/gift/for-mom")
        assert res.status_code == 200
        data = res.json()
        assert "editKey" not in data
        assert data["recipientName"] == "Mom"
        assert data["images"] == ["https://cdn.gifts.test/a.jpg", "https://cdn.gifts.test/b.jpg"]
        assert data["createdAt"]

    def test_read_missing(self, client):
        res = client.get("/gift/missing")
        assert res.status_code == 404
        assert res.json()["detail"] == "Gift not found"

    def test_create_duplicate_slug(self, client):
        _create(client)
        res = client.post("/gift", json={"recipientName": "Dad", "slug": "for-mom"})
        assert res.status_code == 409

    def test_create_missing_name(self, client):
        res = client.post("/gift", json={"slug": "x"})
        assert res.status_code == 400

    def test_create_bad_images_type(self, client):
        res = client.post("/gift", json={"recipientName": "Mom", "images": "not-a-list"})
        assert res.status_code == 400
        assert "images" in res.json()["detail"]

    def test_create_malformed_json(self, client):
        res = client.post(
            "/gift",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400


class TestUpdate:
    def test_update_without_key(self, client):
        _create(client)
        res = client.put("/gift/for-mom", json={"message": "x"})
        assert res.status_code == 401

    def test_update_wrong_key(self, client):
        _create(client)
        res = client.put("/gift/for-mom", json={"message": "x"}, headers={"X-Edit-Key": "wrong"})
        assert res.status_code == 403
        assert client.get("/gift/for-mom").json()["message"] == "Thank you"

    def test_update_missing(self, client):
        res = client.put("/gift/nope", json={"message": "x"}, headers={"X-Edit-Key": "k"})
        assert res.status_code == 404

    def test_update_ok(self, client, blob_store):
        key = _create(client)["editKey"]
        res = client.put(
            "/gift/for-mom",
            json={"message": "Updated", "images": ["https://cdn.gifts.test/a.jpg"]},
            headers={"X-Edit-Key": key},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Updated"
        assert data["greeting"] == "Dear Mom"
        assert data["images"] == ["https://cdn.gifts.test/a.jpg"]
        assert "editKey" not in data
        assert blob_store.delete_calls == [{"b.jpg"}]

    def test_update_blob_failure_is_500(self, client, blob_store):
        key = _create(client)["editKey"]
        blob_store.fail_keys.add("a.jpg")
        res = client.put("/gift/for-mom", json={"images": []}, headers={"X-Edit-Key": key})
        assert res.status_code == 500
        assert "a.jpg" in res.json()["detail"]
        assert len(client.get("/gift/for-mom").json()["images"]) == 2


class TestDelete:
    def test_delete_ok_then_again(self, client):
        key = _create(client)["editKey"]
        res = client.delete("/gift/for-mom", headers={"X-Edit-Key": key})
        assert res.status_code == 204
        assert res.content == b""
        res = client.delete("/gift/for-mom", headers={"X-Edit-Key": key})
        assert res.status_code == 204
        assert client.get("/gift/for-mom").status_code == 404

    def test_delete_without_key(self, client):
        _create(client)
        assert client.delete("/gift/for-mom").status_code == 401

    def test_delete_wrong_key(self, client):
        _create(client)
        res = client.delete("/gift/for-mom", headers={"X-Edit-Key": "wrong"})
        assert res.status_code == 403
        assert client.get("/gift/for-mom").status_code == 200


class TestList:
    def test_list_summaries(self, client):
        _create(client)
        res = client.post("/gifts/list", json={"slugs": ["for-mom", "ghost"]})
        assert res.status_code == 200
        data = res.json()
        assert len(data) == 1
        assert set(data[0]) == {"slug", "recipientName", "createdAt"}

    def test_list_requires_array(self, client):
        res = client.post("/gifts/list", json={"slugs": "for-mom"})
        assert res.status_code == 400

    def test_list_empty(self, client):
        res = client.post("/gifts/list", json={"slugs": []})
        assert res.status_code == 200
        assert res.json() == []


def test_cors_preflight(client):
    res = client.options(
        "/gift/for-mom",
        headers={
            "Origin": "https://gifts.example.com",
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "X-Edit-Key",
        },
    )
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "*"
    assert "PUT" in res.headers["access-control-allow-methods"]


def test_unconfigured_storage_returns_503():
    previous = settings.s3_bucket_name
    settings.s3_bucket_name = ""
    try:
        client = TestClient(app)
        res = client.get("/gift/for-mom")
        assert res.status_code == 503
        assert "configuration" in res.json()["detail"].lower()
    finally:
        settings.s3_bucket_name = previous


@pytest.mark.anyio
async def test_end_to_end_flow(async_client, blob_store):
    res = await async_client.post(
        "/gift", json={"recipientName": "Mom", "slug": "for-mom", "images": ["u1", "u2"]}
    )
    assert res.status_code == 201
    key = res.json()["editKey"]

    res = await async_client.put("/gift/for-mom", json={"images": ["u1"]}, headers={"X-Edit-Key": key})
    assert res.status_code == 200

    assert blob_store.delete_calls == [{"u2"}]
    res = await async_client.get("/gift/for-mom")
    assert res.json()["images"] == ["u1"]
