"""Content-addressed blob storage.

This module stores each distinct file content exactly once under a
directory of blob files named by their SHA-256 hex digest.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
import tempfile
from typing import BinaryIO

from core.constants import DEFAULT_COPY_CHUNK_BYTES, HASH_ALGORITHM, HASH_HEX_LENGTH
from core.errors import BlobNotFoundError, StorageIOError
from core.logging_config import get_logger
from core.types import StoredBlob

_LOGGER = get_logger(__name__)
_TEMP_PREFIX = ".upload-"
_HEX_DIGITS = frozenset("0123456789abcdef")


class ContentStore:
    """Filesystem-backed, deduplicating blob store.

    Incoming bytes are hashed while being spooled to a private temporary
    file inside the blob directory, then hard-linked into their final
    hash-addressed path. Linking fails if the destination already exists,
    so concurrent puts of the same content never expose a partial blob
    and never overwrite an existing one.
    """

    def __init__(self, blobs_dir: Path, chunk_size: int = DEFAULT_COPY_CHUNK_BYTES) -> None:
        self._blobs_dir = blobs_dir
        self._chunk_size = chunk_size
        self._blobs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def blobs_dir(self) -> Path:
        """Return the blob directory path."""
        return self._blobs_dir

    def put(self, stream: BinaryIO) -> StoredBlob:
        """Consume a stream and store its content once.

        Args:
            stream: Readable binary stream, consumed to EOF.

        Returns:
            Content hash and byte count, with whether a new blob was written.

        Raises:
            StorageIOError: If spooling or linking the blob fails.
        """
        hasher = hashlib.new(HASH_ALGORITHM)
        size_bytes = 0
        try:
            file_descriptor, temp_name = tempfile.mkstemp(
                prefix=_TEMP_PREFIX, dir=self._blobs_dir
            )
        except OSError as error:
            raise StorageIOError(
                f"Failed to create upload spool file in {self._blobs_dir}: {error}. "
                "Check that the storage root is writable."
            ) from error
        temp_path = Path(temp_name)
        try:
            with os.fdopen(file_descriptor, "wb") as spool:
                while True:
                    chunk = stream.read(self._chunk_size)
                    if not chunk:
                        break
                    hasher.update(chunk)
                    size_bytes += len(chunk)
                    spool.write(chunk)
                spool.flush()
                os.fsync(spool.fileno())
            content_hash = hasher.hexdigest()
            created = self._link_into_place(temp_path, content_hash)
        except OSError as error:
            raise StorageIOError(
                f"Failed to store uploaded content in {self._blobs_dir}: {error}. "
                "Check free space and permissions, then retry."
            ) from error
        finally:
            temp_path.unlink(missing_ok=True)
        _LOGGER.info(
            "blob_stored" if created else "blob_deduplicated",
            content_hash=content_hash,
            size_bytes=size_bytes,
        )
        return StoredBlob(content_hash=content_hash, size_bytes=size_bytes, created=created)

    def get(self, content_hash: str) -> BinaryIO:
        """Open a blob for reading.

        Args:
            content_hash: Hex digest of the wanted content.

        Returns:
            Binary stream positioned at the start of the blob.

        Raises:
            BlobNotFoundError: If no blob exists for the hash.
            StorageIOError: If the blob exists but cannot be opened.
        """
        blob_path = self.blob_path(content_hash)
        try:
            return blob_path.open("rb")
        except FileNotFoundError as error:
            raise BlobNotFoundError(content_hash) from error
        except OSError as error:
            raise StorageIOError(
                f"Failed to open blob {content_hash}: {error}."
            ) from error

    def read_bytes(self, content_hash: str) -> bytes:
        """Read a whole blob into memory."""
        with self.get(content_hash) as blob:
            try:
                return blob.read()
            except OSError as error:
                raise StorageIOError(
                    f"Failed to read blob {content_hash}: {error}."
                ) from error

    def has(self, content_hash: str) -> bool:
        """Return whether a blob exists for the hash."""
        if not is_content_hash(content_hash):
            return False
        return (self._blobs_dir / content_hash).is_file()

    def blob_path(self, content_hash: str) -> Path:
        """Return the deterministic path for a hash.

        Raises:
            BlobNotFoundError: If the value is not a well-formed digest.
        """
        if not is_content_hash(content_hash):
            raise BlobNotFoundError(content_hash)
        return self._blobs_dir / content_hash

    def list_hashes(self) -> list[str]:
        """List stored content hashes in sorted order."""
        return sorted(
            path.name
            for path in self._blobs_dir.iterdir()
            if path.is_file() and is_content_hash(path.name)
        )

    def _link_into_place(self, temp_path: Path, content_hash: str) -> bool:
        """Publish a spooled blob under its hash; return whether it was new."""
        final_path = self._blobs_dir / content_hash
        if final_path.exists():
            return False
        try:
            os.link(temp_path, final_path)
        except FileExistsError:
            return False
        return True


def is_content_hash(value: str) -> bool:
    """Return whether a value is a lowercase hex SHA-256 digest."""
    return len(value) == HASH_HEX_LENGTH and set(value) <= _HEX_DIGITS
