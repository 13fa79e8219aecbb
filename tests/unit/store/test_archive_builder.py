"""Unit tests for bundle archive assembly."""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import io
import tarfile

import pytest

from core.errors import ArchiveIntegrityError, MissingBlobError
from core.types import Bundle, FileReference
from store.archive_builder import ArchiveBuilder
from store.content_store import ContentStore

_CREATED_AT = datetime(2024, 5, 17, 8, 30, 12, tzinfo=timezone.utc)


def _store_reference(store: ContentStore, name: str, content: bytes) -> FileReference:
    stored = store.put(io.BytesIO(content))
    return FileReference(
        content_hash=stored.content_hash,
        original_name=name,
        size_bytes=stored.size_bytes,
    )


def _bundle(*files: FileReference) -> Bundle:
    return Bundle(bundle_id="demo", files=files, created_at=_CREATED_AT)


def _extract(archive_stream) -> list[tuple[str, bytes]]:
    with tarfile.open(fileobj=archive_stream, mode="r:gz") as archive:
        return [
            (member.name, archive.extractfile(member).read())
            for member in archive.getmembers()
        ]


def test_build_preserves_names_order_and_bytes(content_store: ContentStore) -> None:
    """Entries should appear in bundle order with original names and bytes."""
    bundle = _bundle(
        _store_reference(content_store, "b.txt", b"second"),
        _store_reference(content_store, "a.txt", b"first"),
    )

    with ArchiveBuilder(content_store).build(bundle) as archive_stream:
        entries = _extract(archive_stream)

    assert entries == [("b.txt", b"second"), ("a.txt", b"first")]


def test_build_repeats_shared_blob_under_each_name(content_store: ContentStore) -> None:
    """One blob referenced twice should yield two full entries."""
    bundle = _bundle(
        _store_reference(content_store, "a.txt", b"hello"),
        _store_reference(content_store, "b.txt", b"hello"),
    )

    with ArchiveBuilder(content_store).build(bundle) as archive_stream:
        entries = _extract(archive_stream)

    assert entries == [("a.txt", b"hello"), ("b.txt", b"hello")]


def test_build_keeps_long_and_non_ascii_names(content_store: ContentStore) -> None:
    """PAX headers should carry names beyond the ustar limits verbatim."""
    long_name = "verzeichnis/" + "ü" * 150 + "/日本語-ファイル.txt"
    bundle = _bundle(_store_reference(content_store, long_name, b"data"))

    with ArchiveBuilder(content_store).build(bundle) as archive_stream:
        entries = _extract(archive_stream)

    assert entries == [(long_name, b"data")]


def test_build_sets_recorded_size_and_creation_mtime(content_store: ContentStore) -> None:
    """Entry headers should use recorded sizes and the bundle timestamp."""
    bundle = _bundle(_store_reference(content_store, "a.txt", b"12345"))

    with ArchiveBuilder(content_store).build(bundle) as archive_stream:
        with tarfile.open(fileobj=archive_stream, mode="r:gz") as archive:
            member = archive.getmembers()[0]

    assert (member.size, member.mtime) == (5, int(_CREATED_AT.timestamp()))


def test_build_empty_bundle_yields_valid_empty_archive(content_store: ContentStore) -> None:
    """A bundle without files should produce a readable archive with no entries."""
    with ArchiveBuilder(content_store).build(_bundle()) as archive_stream:
        entries = _extract(archive_stream)

    assert entries == []


def test_build_raises_for_missing_blob(content_store: ContentStore) -> None:
    """Missing blobs should abort the build naming hash and file."""
    missing_hash = hashlib.sha256(b"never stored").hexdigest()
    bundle = _bundle(
        _store_reference(content_store, "ok.txt", b"fine"),
        FileReference(content_hash=missing_hash, original_name="gone.txt", size_bytes=12),
    )

    with pytest.raises(MissingBlobError) as error_info:
        ArchiveBuilder(content_store).build(bundle)

    assert (error_info.value.content_hash, error_info.value.original_name) == (
        missing_hash,
        "gone.txt",
    )


def test_build_raises_for_size_mismatch(content_store: ContentStore) -> None:
    """A recorded size that differs from the blob should abort the build."""
    stored = _store_reference(content_store, "a.txt", b"hello")
    wrong = FileReference(
        content_hash=stored.content_hash,
        original_name="a.txt",
        size_bytes=stored.size_bytes + 1,
    )

    with pytest.raises(ArchiveIntegrityError) as error_info:
        ArchiveBuilder(content_store).build(_bundle(wrong))

    assert (error_info.value.expected, error_info.value.actual) == (6, 5)


def test_write_streams_into_destination(content_store: ContentStore) -> None:
    """Write should emit a gzip tar stream into a caller-owned buffer."""
    bundle = _bundle(_store_reference(content_store, "a.txt", b"hello"))
    destination = io.BytesIO()

    entry_count = ArchiveBuilder(content_store).write(bundle, destination)
    destination.seek(0)

    assert entry_count == 1
    assert _extract(destination) == [("a.txt", b"hello")]
