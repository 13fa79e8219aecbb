"""Shared typed models.

This module defines immutable data models used by the content store,
registry, archive builder, and client facade to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO


@dataclass(frozen=True)
class FileReference:
    """Binding of an original file name and size to stored content.

    Attributes:
        content_hash: Lowercase hex SHA-256 digest of the file bytes.
        original_name: Name the content was submitted under.
        size_bytes: Logical file size in bytes.
    """

    content_hash: str
    original_name: str
    size_bytes: int


@dataclass(frozen=True)
class Bundle:
    """Immutable, ordered collection of file references.

    Attributes:
        bundle_id: Unique bundle identifier.
        files: File references in submission order.
        created_at: UTC creation timestamp.
    """

    bundle_id: str
    files: tuple[FileReference, ...]
    created_at: datetime

    @property
    def total_size_bytes(self) -> int:
        """Sum of logical file sizes, not deduplicated storage bytes."""
        return sum(reference.size_bytes for reference in self.files)


@dataclass(frozen=True)
class BundleSummary:
    """Listing view of one bundle.

    Attributes:
        bundle_id: Bundle identifier.
        file_count: Number of file references.
        total_size_bytes: Sum of logical file sizes.
        created_at: UTC creation timestamp.
    """

    bundle_id: str
    file_count: int
    total_size_bytes: int
    created_at: datetime

    @classmethod
    def from_bundle(cls, bundle: Bundle) -> "BundleSummary":
        """Summarize a bundle."""
        return cls(
            bundle_id=bundle.bundle_id,
            file_count=len(bundle.files),
            total_size_bytes=bundle.total_size_bytes,
            created_at=bundle.created_at,
        )

    def to_payload(self) -> dict[str, object]:
        """Render the summary as a JSON-ready mapping."""
        return {
            "bundle_id": self.bundle_id,
            "num_files": self.file_count,
            "total_size": self.total_size_bytes,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class StoredBlob:
    """Result of storing one content stream.

    Attributes:
        content_hash: Lowercase hex digest of the consumed bytes.
        size_bytes: Number of bytes consumed.
        created: Whether this call wrote a new blob file.
    """

    content_hash: str
    size_bytes: int
    created: bool


@dataclass(frozen=True)
class UploadFile:
    """One file submitted for bundle creation.

    Attributes:
        name: Original file name, stored verbatim.
        stream: Readable binary stream with the file content.
        declared_size: Size reported by the caller, checked when present.
    """

    name: str
    stream: BinaryIO
    declared_size: int | None = None
