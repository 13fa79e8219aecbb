"""Pytest configuration and shared fixtures for repository test runs."""

from __future__ import annotations

import io
from pathlib import Path
import sys

import pytest

_SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from core.config import BundlerConfig  # noqa: E402
from core.types import UploadFile  # noqa: E402
from store.bundle_sdk import BundlerClient  # noqa: E402
from store.content_store import ContentStore  # noqa: E402


@pytest.fixture
def config(tmp_path: Path) -> BundlerConfig:
    """Config rooted in a per-test temporary directory."""
    return BundlerConfig(data_root=tmp_path / "data", copy_chunk_bytes=4)


@pytest.fixture
def client(config: BundlerConfig) -> BundlerClient:
    """SDK client over a fresh storage root."""
    return BundlerClient(config)


@pytest.fixture
def content_store(config: BundlerConfig) -> ContentStore:
    """Content store over a fresh blob directory."""
    return ContentStore(config.blobs_dir, chunk_size=config.copy_chunk_bytes)


@pytest.fixture
def make_upload():
    """Factory for in-memory uploads."""

    def _make_upload(name: str, content: bytes, declared_size: int | None = None) -> UploadFile:
        return UploadFile(name=name, stream=io.BytesIO(content), declared_size=declared_size)

    return _make_upload
