"""Manual smoke run against a live server: python tests_smoke.py [base_url]"""
import random
import string
import sys

import httpx


BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"


def _random_slug() -> str:
    suffix = "".join(random.choice(string.ascii_lowercase) for _ in range(6))
    return f"smoke-{suffix}"


def _expect(r: httpx.Response, status: int, label: str) -> None:
    print(label, "status", r.status_code)
    print(r.text)
    if r.status_code != status:
        print(f"Unexpected status for {label}, wanted {status}")
        sys.exit(1)


def main() -> None:
    session = httpx.Client(timeout=20.0)
    slug = _random_slug()

    print("=== CREATE ===")
    r = session.post(
        f"{BASE_URL}/gift",
        json={"recipientName": "Smoke Test", "greeting": "Hi", "message": "Testing", "slug": slug},
    )
    _expect(r, 201, "create")
    edit_key = r.json()["editKey"]

    print("=== DUPLICATE ===")
    r = session.post(f"{BASE_URL}/gift", json={"recipientName": "Again", "slug": slug})
    _expect(r, 409, "duplicate")

    print("=== READ ===")
    r = session.get(f"{BASE_URL}/gift/{slug}")
    _expect(r, 200, "read")
    if "editKey" in r.json():
        print("editKey leaked in public response")
        sys.exit(1)

    print("=== UPDATE (wrong key) ===")
    r = session.put(f"{BASE_URL}/gift/{slug}", json={"message": "x"}, headers={"X-Edit-Key": "wrong"})
    _expect(r, 403, "update wrong key")

    print("=== UPDATE ===")
    r = session.put(f"{BASE_URL}/gift/{slug}", json={"message": "Updated"}, headers={"X-Edit-Key": edit_key})
    _expect(r, 200, "update")

    print("=== LIST ===")
    r = session.post(f"{BASE_URL}/gifts/list", json={"slugs": [slug, _random_slug()]})
    _expect(r, 200, "list")

    print("=== UPLOAD URL ===")
    r = session.post(f"{BASE_URL}/upload-url", json={"filename": "smoke.jpg", "contentType": "image/jpeg"})
    _expect(r, 200, "upload-url")

    print("=== DELETE ===")
    r = session.delete(f"{BASE_URL}/gift/{slug}", headers={"X-Edit-Key": edit_key})
    _expect(r, 204, "delete")
    r = session.delete(f"{BASE_URL}/gift/{slug}", headers={"X-Edit-Key": edit_key})
    _expect(r, 204, "delete again")

    print("Smoke run OK")


if __name__ == "__main__":
    main()
