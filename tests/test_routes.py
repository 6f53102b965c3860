"""Tests for the HTTP routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.helpers import make_image
from tests.mocks import MockStorage
from uploader.config import Settings


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, app_settings: Settings, storage: MockStorage):
    monkeypatch.setattr("uploader.main.settings", app_settings.model_copy(update={"file_size_limit": 200_000}))
    monkeypatch.setattr("uploader.main.build_storage", lambda _settings: storage)

    from uploader.main import app

    with TestClient(app) as test_client:
        yield test_client


class TestUploadRoute:
    def test_plain_upload_returns_no_content(self, client: TestClient, storage: MockStorage) -> None:
        response = client.post("/notes.txt", content=b"hello world", headers={"content-type": "text/plain"})

        assert response.status_code == 204
        assert response.content == b""
        assert storage.objects == {"notes.txt": b"hello world"}
        assert storage.content_types["notes.txt"] == "text/plain"

    def test_image_upload_stores_three_variants(self, client: TestClient, storage: MockStorage) -> None:
        response = client.post("/photo", content=make_image("PNG", (64, 64)), headers={"content-type": "image/png"})

        assert response.status_code == 204
        assert sorted(storage.objects) == ["photo-large", "photo-medium", "photo-small"]

    def test_forbidden_type_is_a_client_error(self, client: TestClient, storage: MockStorage) -> None:
        response = client.post("/tool.exe", content=b"MZ", headers={"content-type": "application/x-msdownload"})

        assert response.status_code == 400
        assert response.json() == {"detail": "application/x-msdownload is not allowed!"}
        assert storage.calls == []

    def test_oversized_body_is_a_client_error(self, client: TestClient, storage: MockStorage) -> None:
        response = client.post("/big.bin", content=b"x" * 300_000, headers={"content-type": "application/octet-stream"})

        assert response.status_code == 400
        assert response.json() == {"detail": "Limit exceeded"}
        assert storage.objects == {}

    def test_storage_failure_is_a_client_error(self, client: TestClient, storage: MockStorage) -> None:
        storage.fail_keys.add("broken")

        response = client.post("/broken", content=b"data", headers={"content-type": "text/plain"})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Storage upload failed for broken")

    def test_undecodable_image_detail_is_generic(self, client: TestClient, storage: MockStorage) -> None:
        response = client.post("/photo", content=b"not an image" * 20, headers={"content-type": "image/jpeg"})

        assert response.status_code == 400
        assert response.json() == {"detail": "Unable to process image: unsupported or corrupt image"}
        assert storage.objects == {}

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.post(
            "/notes.txt",
            content=b"hi",
            headers={"content-type": "text/plain", "x-request-id": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"


class TestHealthRoute:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "app_name": "Streaming Upload Service",
            "storage_backend": "local",
        }
