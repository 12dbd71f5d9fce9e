"""Tests for upload, file serving and URL signing endpoints."""

from urllib.parse import urlsplit

from examdesk.storage.object_store import LocalObjectStore
from examdesk.storage.upload_router import UPLOAD_ENDPOINTS


def _path(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}" if parts.query else parts.path


class TestUploadEndpoint:
    """Tests for POST /api/uploads/{endpoint}."""

    def test_upload_pdf(self, client, store, make_pdf):
        response = client.post(
            "/api/uploads/documentUploader",
            files={"file": ("Syllabus 2024.pdf", make_pdf("syllabus"), "application/pdf")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["endpoint"] == "documentUploader"
        assert data["content_type"] == "application/pdf"
        assert data["key"].startswith("uploads/")
        assert store.exists(data["key"])

    def test_unknown_endpoint(self, client):
        response = client.post(
            "/api/uploads/nope", files={"file": ("a.pdf", b"%PDF", "application/pdf")}
        )
        assert response.status_code == 404

    def test_wrong_type(self, client):
        response = client.post(
            "/api/uploads/documentUploader", files={"file": ("a.txt", b"hi", "text/plain")}
        )
        assert response.status_code == 415

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setitem(UPLOAD_ENDPOINTS, "tinyUploader", {"application/pdf": "1KB"})
        response = client.post(
            "/api/uploads/tinyUploader",
            files={"file": ("a.pdf", b"x" * 2048, "application/pdf")},
        )
        assert response.status_code == 413


class TestServeFile:
    """Tests for GET /files/{bucket}/{key}."""

    def test_public_url(self, client, store):
        stored = store.put("notes/motion.txt", b"F = ma", "text/plain")

        response = client.get(_path(stored.url))

        assert response.status_code == 200
        assert response.content == b"F = ma"
        assert response.headers["content-type"].startswith("text/plain")

    def test_missing(self, client, store):
        assert client.get("/files/files/notes/none.txt").status_code == 404

    def test_wrong_bucket(self, client, store):
        store.put("notes/motion.txt", b"F = ma")
        assert client.get("/files/other/notes/motion.txt").status_code == 404

    def test_signed_url(self, client, store):
        store.put("notes/motion.txt", b"F = ma", "text/plain")

        response = client.post(
            "/api/files/sign",
            json={"url": store.public_url("notes/motion.txt"), "expires_in": 60},
        )

        assert response.status_code == 200
        signed = response.json()["signed_url"]
        assert "token=" in signed
        assert client.get(_path(signed)).content == b"F = ma"

    def test_token_for_other_key(self, client, store):
        store.put("notes/a.txt", b"a")
        store.put("notes/b.txt", b"b")
        token = urlsplit(store.signed_url("notes/a.txt")).query

        assert client.get(f"/files/files/notes/b.txt?{token}").status_code == 403

    def test_token_from_other_secret(self, client, store, tmp_path):
        store.put("notes/a.txt", b"a")
        other = LocalObjectStore(tmp_path / "other", "http://testserver/files", "other-secret")
        other.put("notes/a.txt", b"a")

        response = client.get(_path(other.signed_url("notes/a.txt")))

        assert response.status_code == 403

    def test_sign_foreign_url(self, client, store):
        response = client.post("/api/files/sign", json={"url": "https://elsewhere.example/a.pdf"})
        assert response.status_code == 400

    def test_sign_missing_object(self, client, store):
        response = client.post(
            "/api/files/sign", json={"url": store.public_url("notes/none.txt")}
        )
        assert response.status_code == 404
