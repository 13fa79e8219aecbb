"""In-memory bundle registry with a durable snapshot mirror.

All mutations run under one lock and persist the full registry before
they are published. Readers work from an immutable mapping that is
swapped in only after a successful persist, so they never observe a
half-applied create.
"""

from __future__ import annotations

from datetime import datetime, timezone
import secrets
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from core.constants import BUNDLE_ID_BYTES, MAX_BUNDLE_ID_ATTEMPTS
from core.errors import BundleNotFoundError, BundlerError, PersistenceError
from core.logging_config import get_logger
from core.types import Bundle, BundleSummary, FileReference
from store.registry_codec import read_snapshot_file, write_snapshot_file

_LOGGER = get_logger(__name__)


def generate_bundle_id() -> str:
    """Return a random 96-bit bundle id rendered as lowercase hex."""
    return secrets.token_hex(BUNDLE_ID_BYTES)


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class BundleRegistry:
    """Thread-safe registry of bundles keyed by id."""

    def __init__(
        self,
        snapshot_path: Path,
        id_factory: Callable[[], str] = generate_bundle_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Load the registry from its snapshot file.

        Args:
            snapshot_path: Snapshot file path; missing means empty.
            id_factory: Source of new bundle ids.
            clock: Source of creation timestamps.

        Raises:
            CorruptSnapshotError: If the existing snapshot is malformed.
        """
        self._snapshot_path = snapshot_path
        self._id_factory = id_factory
        self._clock = clock
        self._write_lock = threading.Lock()
        bundles = read_snapshot_file(snapshot_path)
        self._bundles: Mapping[str, Bundle] = MappingProxyType(bundles)
        _LOGGER.info(
            "registry_loaded",
            snapshot_path=str(snapshot_path),
            bundle_count=len(bundles),
        )

    @property
    def snapshot_path(self) -> Path:
        """Return the snapshot file path."""
        return self._snapshot_path

    def create(self, files: Iterable[FileReference]) -> Bundle:
        """Register a new bundle and persist the registry.

        Args:
            files: Ordered file references; may be empty.

        Returns:
            The registered bundle.

        Raises:
            PersistenceError: If the snapshot write fails. The bundle is
                not registered in that case.
        """
        references = tuple(files)
        with self._write_lock:
            current = self._bundles
            bundle = Bundle(
                bundle_id=self._new_bundle_id(current),
                files=references,
                created_at=self._clock(),
            )
            updated = dict(current)
            updated[bundle.bundle_id] = bundle
            try:
                write_snapshot_file(self._snapshot_path, updated)
            except PersistenceError:
                _LOGGER.error(
                    "bundle_create_rolled_back",
                    bundle_id=bundle.bundle_id,
                    file_count=len(references),
                )
                raise
            self._bundles = MappingProxyType(updated)
        _LOGGER.info(
            "bundle_created",
            bundle_id=bundle.bundle_id,
            file_count=len(references),
            total_size_bytes=bundle.total_size_bytes,
        )
        return bundle

    def get(self, bundle_id: str) -> Bundle:
        """Look up a bundle by id.

        Raises:
            BundleNotFoundError: If no bundle has that id.
        """
        bundle = self._bundles.get(bundle_id)
        if bundle is None:
            raise BundleNotFoundError(bundle_id)
        return bundle

    def list_bundles(self) -> list[BundleSummary]:
        """Summarize every bundle, oldest first."""
        bundles = self._bundles.values()
        ordered = sorted(bundles, key=lambda item: (item.created_at, item.bundle_id))
        return [BundleSummary.from_bundle(bundle) for bundle in ordered]

    def __len__(self) -> int:
        return len(self._bundles)

    def __contains__(self, bundle_id: object) -> bool:
        return bundle_id in self._bundles

    def _new_bundle_id(self, current: Mapping[str, Bundle]) -> str:
        for _ in range(MAX_BUNDLE_ID_ATTEMPTS):
            bundle_id = self._id_factory()
            if bundle_id not in current:
                return bundle_id
        raise BundlerError(
            f"Failed to generate an unused bundle id after {MAX_BUNDLE_ID_ATTEMPTS} attempts. "
            "Check the bundle id factory."
        )
