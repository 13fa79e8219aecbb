"""Registry snapshot encoding and persistence.

This module converts the bundle registry to and from its JSON snapshot
and writes snapshots as a single atomic file replacement.
"""

from __future__ import annotations

from datetime import datetime
import json
import os
from pathlib import Path
import re
import tempfile
from typing import Any, Mapping

from core.constants import (
    LEGACY_SNAPSHOT_FILES_KEY,
    SNAPSHOT_CREATED_AT_KEY,
    SNAPSHOT_FILES_KEY,
)
from core.errors import CorruptSnapshotError, PersistenceError
from core.types import Bundle, FileReference
from store.content_store import is_content_hash

_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def encode_registry(bundles: Mapping[str, Bundle]) -> bytes:
    """Serialize every bundle into deterministic snapshot bytes.

    Args:
        bundles: Registry mapping of bundle id to bundle.

    Returns:
        UTF-8 JSON document keyed by bundle id.
    """
    payload = {bundle_id: _bundle_to_dict(bundles[bundle_id]) for bundle_id in sorted(bundles)}
    text = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def decode_registry(snapshot: bytes) -> dict[str, Bundle]:
    """Parse snapshot bytes into a registry mapping.

    Args:
        snapshot: Raw snapshot file content. Blank content is an empty registry.

    Returns:
        Mapping of bundle id to bundle.

    Raises:
        CorruptSnapshotError: If the snapshot does not match the schema.
    """
    try:
        text = snapshot.decode("utf-8")
    except UnicodeDecodeError as error:
        raise CorruptSnapshotError(
            f"Registry snapshot is not valid UTF-8: {error}. "
            "Restore the snapshot from a backup."
        ) from error
    if not text.strip():
        return {}
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise CorruptSnapshotError(
            f"Failed to parse registry snapshot: {error.msg} at line {error.lineno}. "
            "Restore the snapshot from a backup."
        ) from error
    if not isinstance(payload, dict):
        raise CorruptSnapshotError(
            "Failed to parse registry snapshot: expected JSON object at top level."
        )
    return {
        str(bundle_id): _bundle_from_dict(str(bundle_id), entry)
        for bundle_id, entry in payload.items()
    }


def read_snapshot_file(snapshot_path: Path) -> dict[str, Bundle]:
    """Load the registry from disk; a missing file is an empty registry.

    Raises:
        CorruptSnapshotError: If the file is malformed or unreadable.
    """
    try:
        snapshot = snapshot_path.read_bytes()
    except FileNotFoundError:
        return {}
    except OSError as error:
        raise CorruptSnapshotError(
            f"Failed to read registry snapshot {snapshot_path}: {error}."
        ) from error
    return decode_registry(snapshot)


def write_snapshot_file(snapshot_path: Path, bundles: Mapping[str, Bundle]) -> None:
    """Atomically replace the snapshot file with the full registry.

    Args:
        snapshot_path: Destination snapshot path.
        bundles: Complete registry to persist.

    Raises:
        PersistenceError: If the snapshot cannot be written.
    """
    snapshot = encode_registry(bundles)
    temp_name: str | None = None
    try:
        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        file_descriptor, temp_name = tempfile.mkstemp(
            prefix=f".{snapshot_path.name}-",
            suffix=".tmp",
            dir=snapshot_path.parent,
        )
        with os.fdopen(file_descriptor, "wb") as handle:
            handle.write(snapshot)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, snapshot_path)
        temp_name = None
    except OSError as error:
        raise PersistenceError(
            f"Failed to write registry snapshot {snapshot_path}: {error}. "
            "Check free space and permissions, then retry."
        ) from error
    finally:
        if temp_name is not None:
            Path(temp_name).unlink(missing_ok=True)


def _bundle_to_dict(bundle: Bundle) -> dict[str, Any]:
    return {
        SNAPSHOT_CREATED_AT_KEY: bundle.created_at.isoformat(),
        SNAPSHOT_FILES_KEY: [
            {
                "hash": reference.content_hash,
                "name": reference.original_name,
                "size": reference.size_bytes,
            }
            for reference in bundle.files
        ],
    }


def _bundle_from_dict(bundle_id: str, entry: object) -> Bundle:
    """Validate and convert one snapshot entry."""
    if not isinstance(entry, dict):
        raise CorruptSnapshotError(f"Bundle {bundle_id}: entry must be a JSON object.")
    created_at = _parse_timestamp(bundle_id, entry.get(SNAPSHOT_CREATED_AT_KEY))
    raw_files = entry.get(SNAPSHOT_FILES_KEY, entry.get(LEGACY_SNAPSHOT_FILES_KEY))
    if not isinstance(raw_files, list):
        raise CorruptSnapshotError(
            f"Bundle {bundle_id}: missing '{SNAPSHOT_FILES_KEY}' list."
        )
    files = tuple(
        _reference_from_dict(bundle_id, index, item) for index, item in enumerate(raw_files)
    )
    return Bundle(bundle_id=bundle_id, files=files, created_at=created_at)


def _reference_from_dict(bundle_id: str, index: int, item: object) -> FileReference:
    location = f"Bundle {bundle_id} file #{index}"
    if not isinstance(item, dict):
        raise CorruptSnapshotError(f"{location}: entry must be a JSON object.")
    content_hash = item.get("hash")
    name = item.get("name")
    size = item.get("size")
    if not isinstance(content_hash, str) or not is_content_hash(content_hash):
        raise CorruptSnapshotError(f"{location}: 'hash' must be a lowercase hex SHA-256 digest.")
    if not isinstance(name, str):
        raise CorruptSnapshotError(f"{location}: 'name' must be a string.")
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise CorruptSnapshotError(f"{location}: 'size' must be a non-negative integer.")
    return FileReference(content_hash=content_hash, original_name=name, size_bytes=size)


def _parse_timestamp(bundle_id: str, value: object) -> datetime:
    """Parse an ISO-8601 creation timestamp, including `Z` and nanosecond forms."""
    if not isinstance(value, str):
        raise CorruptSnapshotError(
            f"Bundle {bundle_id}: '{SNAPSHOT_CREATED_AT_KEY}' must be an ISO-8601 string."
        )
    normalized = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    normalized = _EXTRA_FRACTION_DIGITS.sub(r"\1", normalized)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as error:
        raise CorruptSnapshotError(
            f"Bundle {bundle_id}: malformed '{SNAPSHOT_CREATED_AT_KEY}' value {value!r}."
        ) from error
    if parsed.tzinfo is None:
        raise CorruptSnapshotError(
            f"Bundle {bundle_id}: '{SNAPSHOT_CREATED_AT_KEY}' value {value!r} has no UTC offset."
        )
    return parsed
