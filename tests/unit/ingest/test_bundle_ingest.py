"""Unit tests for the bundle creation flow."""

from __future__ import annotations

import hashlib

import pytest

from core.config import BundlerConfig
from core.errors import BundlerInputError, PersistenceError
from ingest.bundle_ingest import ingest_uploads
from store import bundle_registry as bundle_registry_module
from store.bundle_registry import BundleRegistry
from store.content_store import ContentStore


def test_ingest_records_references_in_submission_order(
    config: BundlerConfig, content_store: ContentStore, make_upload
) -> None:
    """Bundles should list one reference per upload, in order."""
    registry = BundleRegistry(config.snapshot_path)
    uploads = [make_upload("z.txt", b"last"), make_upload("a.txt", b"first!")]

    bundle = ingest_uploads(uploads, content_store, registry)

    assert [(ref.original_name, ref.size_bytes) for ref in bundle.files] == [
        ("z.txt", 4),
        ("a.txt", 6),
    ]


def test_ingest_deduplicates_identical_uploads(
    config: BundlerConfig, content_store: ContentStore, make_upload
) -> None:
    """Two names with identical content should share one blob."""
    registry = BundleRegistry(config.snapshot_path)
    uploads = [make_upload("a.txt", b"hello"), make_upload("b.txt", b"hello")]

    bundle = ingest_uploads(uploads, content_store, registry)

    expected_hash = hashlib.sha256(b"hello").hexdigest()

    assert {ref.content_hash for ref in bundle.files} == {expected_hash}
    assert content_store.list_hashes() == [expected_hash]


def test_ingest_rejects_declared_size_mismatch(
    config: BundlerConfig, content_store: ContentStore, make_upload
) -> None:
    """A declared size that disagrees with the received bytes should fail."""
    registry = BundleRegistry(config.snapshot_path)

    with pytest.raises(BundlerInputError):
        ingest_uploads([make_upload("a.txt", b"hello", declared_size=3)], content_store, registry)

    assert registry.list_bundles() == []


def test_ingest_keeps_blobs_when_persist_fails(
    config: BundlerConfig,
    content_store: ContentStore,
    make_upload,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Blobs written before a failed create should stay for later reuse."""
    registry = BundleRegistry(config.snapshot_path)

    def _fail_write(*_args, **_kwargs) -> None:
        raise PersistenceError("disk full")

    monkeypatch.setattr(bundle_registry_module, "write_snapshot_file", _fail_write)

    with pytest.raises(PersistenceError):
        ingest_uploads([make_upload("a.txt", b"hello")], content_store, registry)

    assert content_store.has(hashlib.sha256(b"hello").hexdigest())
    assert len(registry) == 0
