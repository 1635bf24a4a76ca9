from __future__ import annotations

import asyncio

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from picture_organiser.api.http_api import create_app
from picture_organiser.core.models import Photo
from picture_organiser.ingest import IngestionPipeline, OptimizationPolicy
from picture_organiser.store import append_photos

SECRET = "test-secret-key-for-picture-organiser-tests"


def _auth(user_id: str = "user-1") -> dict[str, str]:
    token = jwt.encode({"userId": user_id, "email": f"{user_id}@example.com"}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(store, monkeypatch) -> TestClient:
    monkeypatch.setenv("JWT_SECRET", SECRET)
    return TestClient(create_app(store=store))


def test_welcome_and_health(client) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Welcome" in resp.text

    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "store": "ok"}


def test_upload_requires_token(client, album, make_image) -> None:
    files = [("photos", ("a.jpg", make_image(), "image/jpeg"))]
    resp = client.post(f"/api/albums/{album.id}/upload", files=files)
    assert resp.status_code == 401
    assert "error" in resp.json()

    resp = client.post(
        f"/api/albums/{album.id}/upload",
        files=files,
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


def test_upload_two_photos(client, album, load_album, make_image) -> None:
    files = [
        ("photos", ("a.jpg", make_image((40, 30)), "image/jpeg")),
        ("photos", ("b.png", make_image((20, 20), fmt="PNG"), "image/png")),
    ]
    resp = client.post(
        f"/api/albums/{album.id}/upload",
        files=files,
        data={"description": "holiday"},
        headers=_auth(),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["uploaded"] == 2
    assert [set(d) for d in body["details"]] == [{"id", "originalSize", "optimizedSize", "quality"}] * 2
    assert all(d["quality"] in {80, 60, 40} for d in body["details"])

    photos = load_album(album.id)["photos"]
    assert [p["id"] for p in photos] == [d["id"] for d in body["details"]]
    assert photos[0]["metadata"]["description"] == "holiday"


def test_upload_validation_errors(client, album) -> None:
    resp = client.post(
        f"/api/albums/{album.id}/upload",
        files=[("photos", ("notes.txt", b"hello", "text/plain"))],
        headers=_auth(),
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid file type"}

    resp = client.post(f"/api/albums/{album.id}/upload", data={"description": "x"}, headers=_auth())
    assert resp.status_code == 400
    assert resp.json() == {"error": "No files uploaded"}


def test_upload_rejects_too_many_files(client, album, make_image) -> None:
    data = make_image((8, 8))
    files = [("photos", (f"{i}.jpg", data, "image/jpeg")) for i in range(11)]
    resp = client.post(f"/api/albums/{album.id}/upload", files=files, headers=_auth())
    assert resp.status_code == 400
    assert "Too many files" in resp.json()["error"]


def test_oversized_upload_is_rejected_before_reading(store, album, make_image, monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", SECRET)

    async def _no_read(self, size: int = -1) -> bytes:
        raise AssertionError("upload body was read")

    monkeypatch.setattr(UploadFile, "read", _no_read)
    pipeline = IngestionPipeline(store, OptimizationPolicy(max_upload_bytes=100))
    client = TestClient(create_app(store=store, pipeline=pipeline))
    resp = client.post(
        f"/api/albums/{album.id}/upload",
        files=[("photos", ("big.jpg", make_image((64, 64)), "image/jpeg"))],
        headers=_auth(),
    )
    assert resp.status_code == 400
    assert "too large" in resp.json()["error"]


def test_upload_to_foreign_album(client, album, load_album, make_image) -> None:
    resp = client.post(
        f"/api/albums/{album.id}/upload",
        files=[("photos", ("a.jpg", make_image(), "image/jpeg"))],
        headers=_auth("someone-else"),
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Album not found or user does not have permission"}
    assert load_album(album.id)["photos"] == []


def test_delete_photo(client, store, album, load_album) -> None:
    photo = Photo(id="p1", url="data:image/jpeg;base64,AAAA", quality=80, original_size=5, optimized_size=3)
    asyncio.run(append_photos(store, album.id, "user-1", [photo]))

    resp = client.delete(f"/api/albums/{album.id}/photos/p1", headers=_auth("someone-else"))
    assert resp.status_code == 404

    resp = client.delete(f"/api/albums/{album.id}/photos/p1", headers=_auth())
    assert resp.status_code == 200
    assert resp.json() == {"message": "Photo deleted successfully"}
    assert load_album(album.id)["photos"] == []

    resp = client.delete(f"/api/albums/{album.id}/photos/p1", headers=_auth())
    assert resp.status_code == 404
    assert resp.json() == {"error": "Photo not found in the album"}


def test_unknown_route_uses_error_shape(client) -> None:
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "error" in resp.json()
