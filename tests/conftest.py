"""Shared pytest fixtures for upload service tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.mocks import MockStorage
from uploader.config import Settings


@pytest.fixture
def storage() -> MockStorage:
    return MockStorage()


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        file_size_limit="10MB",
        forbidden_content_type="application/x-forbidden,application/x-msdownload",
        storage_backend="local",
        upload_dir=str(tmp_path / "uploads"),
        stream_buffer_chunks=4,
    )
