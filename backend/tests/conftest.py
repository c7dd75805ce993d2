from __future__ import annotations

from pathlib import Path

import pytest

from app.config import Settings
from fakes import FakeEncoder, FakeMediaSource


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    # Very wide cache bucket so requests made through the API with the real
    # clock land in the same bucket.
    return Settings(data_dir=tmp_path, cache_bucket_seconds=10**9, wait_timeout_seconds=5.0)


@pytest.fixture
def media_source(tmp_path: Path) -> FakeMediaSource:
    return FakeMediaSource(tmp_path / "clips")


@pytest.fixture
def encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def anyio_backend() -> str:
    # The application is built on asyncio; run anyio-marked tests on it only.
    return "asyncio"
