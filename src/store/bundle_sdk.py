"""Python SDK for bundle operations.

This module exposes the calls a transport layer or CLI needs: create,
list, and download bundles, backed by the content store, registry,
and archive builder.
"""

from __future__ import annotations

from dataclasses import replace
import os
from pathlib import Path
import shutil
import tempfile
from typing import BinaryIO, Iterable

from core.config import BundlerConfig
from core.constants import ARCHIVE_SUFFIX
from core.errors import BundleNotFoundError, StorageIOError
from core.logging_config import get_logger
from core.types import Bundle, BundleSummary, UploadFile
from ingest.bundle_ingest import ingest_uploads
from ingest.upload_reader import open_uploads
from store.archive_builder import ArchiveBuilder
from store.bundle_registry import BundleRegistry
from store.content_store import ContentStore

_LOGGER = get_logger(__name__)


class BundlerClient:
    """Primary SDK entry point for bundle workflows."""

    def __init__(self, config: BundlerConfig | None = None) -> None:
        """Prepare storage directories and load the registry.

        Args:
            config: Optional runtime configuration.

        Raises:
            CorruptSnapshotError: If the existing snapshot is malformed.
        """
        self._config = config or BundlerConfig.from_env()
        self._content_store = ContentStore(self._config.blobs_dir, self._config.copy_chunk_bytes)
        self._config.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        self._registry = BundleRegistry(self._config.snapshot_path)
        self._archive_builder = ArchiveBuilder(
            self._content_store, self._config.archive_spool_bytes
        )

    @property
    def config(self) -> BundlerConfig:
        """Return the runtime configuration."""
        return self._config

    @property
    def content_store(self) -> ContentStore:
        """Return the backing content store."""
        return self._content_store

    @property
    def registry(self) -> BundleRegistry:
        """Return the backing bundle registry."""
        return self._registry

    def create_bundle(self, uploads: Iterable[UploadFile]) -> str:
        """Store uploads and register them as one bundle.

        Args:
            uploads: Submitted files in bundle order.

        Returns:
            New bundle id.
        """
        bundle = ingest_uploads(uploads, self._content_store, self._registry)
        return bundle.bundle_id

    def create_bundle_from_paths(self, paths: Iterable[str | Path]) -> str:
        """Create a bundle from local files and directories.

        Args:
            paths: Files or directories; directories are walked recursively.

        Returns:
            New bundle id.
        """
        with open_uploads(paths) as uploads:
            return self.create_bundle(uploads)

    def list_bundles(self) -> list[BundleSummary]:
        """List bundle summaries, oldest first."""
        summaries = self._registry.list_bundles()
        _LOGGER.info("bundles_listed", bundle_count=len(summaries))
        return summaries

    def get_bundle(self, bundle_id: str) -> Bundle:
        """Return one bundle by id.

        Raises:
            BundleNotFoundError: If the id is unknown.
        """
        return self._registry.get(bundle_id)

    def download_bundle(self, bundle_id: str) -> BinaryIO:
        """Build the tar.gz archive for a bundle.

        Args:
            bundle_id: Bundle identifier.

        Returns:
            Complete archive stream positioned at the start; caller closes it.

        Raises:
            BundleNotFoundError: If the id is unknown or the bundle has no files.
            MissingBlobError: If a referenced blob is gone.
            ArchiveIntegrityError: If a blob size differs from its record.
        """
        bundle = self._downloadable_bundle(bundle_id)
        return self._archive_builder.build(bundle)

    def save_bundle_archive(self, bundle_id: str, output_dir: str | Path) -> Path:
        """Write a bundle archive to ``<output_dir>/<bundle_id>.tar.gz``.

        The archive is written to a temporary file first and renamed into
        place once complete.

        Args:
            bundle_id: Bundle identifier.
            output_dir: Destination directory, created if missing.

        Returns:
            Path of the saved archive.
        """
        bundle = self._downloadable_bundle(bundle_id)
        destination_dir = Path(output_dir).expanduser()
        output_path = destination_dir / f"{bundle_id}{ARCHIVE_SUFFIX}"
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=destination_dir,
                prefix=f".{bundle_id}-",
                suffix=".part",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
        except OSError as error:
            raise StorageIOError(
                f"Failed to prepare archive destination in {destination_dir}: {error}."
            ) from error
        try:
            with temp_path.open("wb") as handle:
                self._archive_builder.write(bundle, handle)
            os.replace(temp_path, output_path)
        except OSError as error:
            raise StorageIOError(
                f"Failed to save archive for bundle {bundle_id} to {output_path}: {error}."
            ) from error
        finally:
            temp_path.unlink(missing_ok=True)
        return output_path

    def copy_bundle_archive(self, bundle_id: str, destination: BinaryIO) -> None:
        """Copy a fully built archive into a writable stream."""
        with self.download_bundle(bundle_id) as archive:
            shutil.copyfileobj(archive, destination, self._config.copy_chunk_bytes)

    def with_data_root(self, data_root: str | Path) -> "BundlerClient":
        """Clone the client with a different storage root.

        Args:
            data_root: New storage root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        return BundlerClient(replace(self._config, data_root=resolved_root))

    def _downloadable_bundle(self, bundle_id: str) -> Bundle:
        try:
            bundle = self._registry.get(bundle_id)
        except BundleNotFoundError:
            _LOGGER.warning("bundle_download_missing", bundle_id=bundle_id, reason="unknown")
            raise
        if not bundle.files:
            _LOGGER.warning("bundle_download_missing", bundle_id=bundle_id, reason="empty")
            raise BundleNotFoundError(bundle_id, reason="bundle has no files")
        return bundle


def initialize(storage_root: str | Path, config: BundlerConfig | None = None) -> BundlerClient:
    """Open the bundle store rooted at a directory.

    Args:
        storage_root: Directory holding the blob directory and snapshot file.
        config: Optional base configuration for non-path settings.

    Returns:
        Ready SDK client.
    """
    base_config = config or BundlerConfig(data_root=Path(storage_root))
    resolved_root = Path(storage_root).expanduser().resolve()
    return BundlerClient(replace(base_config, data_root=resolved_root))
