"""Bundle archive assembly.

This module reconstructs a bundle as a gzip-compressed tar stream from
content-store blobs, preserving original names and recorded sizes.
"""

from __future__ import annotations

import os
import tarfile
import tempfile
from typing import BinaryIO

from core.constants import ARCHIVE_ENTRY_MODE, DEFAULT_ARCHIVE_SPOOL_BYTES
from core.errors import ArchiveIntegrityError, BlobNotFoundError, MissingBlobError, StorageIOError
from core.logging_config import get_logger
from core.types import Bundle, FileReference
from store.content_store import ContentStore

_LOGGER = get_logger(__name__)


class ArchiveBuilder:
    """Build tar.gz archives for bundles.

    The PAX tar format is used so entry names of any length or script and
    entries beyond the 8 GiB ustar limit are stored without truncation.
    """

    def __init__(
        self,
        content_store: ContentStore,
        spool_bytes: int = DEFAULT_ARCHIVE_SPOOL_BYTES,
    ) -> None:
        self._content_store = content_store
        self._spool_bytes = spool_bytes

    def build(self, bundle: Bundle) -> BinaryIO:
        """Build a complete archive for a bundle.

        The archive is assembled into a spooled temporary file and only
        returned once every entry has been written, so callers never
        receive a truncated archive.

        Args:
            bundle: Bundle to reconstruct.

        Returns:
            Readable binary stream positioned at the archive start. The
            caller owns and must close it.

        Raises:
            MissingBlobError: If a referenced blob does not exist.
            ArchiveIntegrityError: If a blob size differs from its record.
            StorageIOError: If reading a blob or spooling the archive fails.
        """
        spool = tempfile.SpooledTemporaryFile(max_size=self._spool_bytes, mode="w+b")
        try:
            self.write(bundle, spool)
            spool.seek(0)
        except BaseException:
            spool.close()
            raise
        return spool

    def write(self, bundle: Bundle, output: BinaryIO) -> int:
        """Stream a bundle archive into a writable binary stream.

        On failure the output holds a partial archive; callers that hand
        the output to a client must discard it.

        Args:
            bundle: Bundle to reconstruct.
            output: Writable destination, left open.

        Returns:
            Number of archive entries written.
        """
        try:
            with tarfile.open(
                fileobj=output,
                mode="w|gz",
                format=tarfile.PAX_FORMAT,
                encoding="utf-8",
            ) as archive:
                for reference in bundle.files:
                    self._append_entry(archive, reference, bundle)
        except (MissingBlobError, ArchiveIntegrityError) as error:
            _LOGGER.error(
                "archive_build_failed",
                bundle_id=bundle.bundle_id,
                error_type=type(error).__name__,
            )
            raise
        except OSError as error:
            _LOGGER.error(
                "archive_build_failed",
                bundle_id=bundle.bundle_id,
                error_type=type(error).__name__,
            )
            raise StorageIOError(
                f"Failed to assemble archive for bundle {bundle.bundle_id}: {error}."
            ) from error
        _LOGGER.info(
            "archive_built",
            bundle_id=bundle.bundle_id,
            entry_count=len(bundle.files),
            total_size_bytes=bundle.total_size_bytes,
        )
        return len(bundle.files)

    def _append_entry(
        self,
        archive: tarfile.TarFile,
        reference: FileReference,
        bundle: Bundle,
    ) -> None:
        """Append one blob under its original name after checking its size."""
        try:
            blob = self._content_store.get(reference.content_hash)
        except BlobNotFoundError as error:
            raise MissingBlobError(reference.content_hash, reference.original_name) from error
        with blob:
            stored_size = os.fstat(blob.fileno()).st_size
            if stored_size != reference.size_bytes:
                raise ArchiveIntegrityError(
                    reference.content_hash,
                    reference.original_name,
                    expected=reference.size_bytes,
                    actual=stored_size,
                )
            entry = tarfile.TarInfo(name=reference.original_name)
            entry.size = reference.size_bytes
            entry.mode = ARCHIVE_ENTRY_MODE
            entry.mtime = int(bundle.created_at.timestamp())
            archive.addfile(entry, blob)
