"""Bundler exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class BundlerError(Exception):
    """Base exception for all bundler failures."""


class BundlerConfigError(BundlerError):
    """Raised for invalid runtime configuration."""


class BundlerInputError(BundlerError):
    """Raised when caller-supplied uploads or paths are invalid."""


class NotFoundError(BundlerError):
    """Base class for lookups that resolve to nothing."""


class BundleNotFoundError(NotFoundError):
    """Raised for an unknown bundle id."""

    def __init__(self, bundle_id: str, reason: str = "unknown bundle id") -> None:
        self.bundle_id = bundle_id
        super().__init__(f"Bundle not found: {bundle_id} ({reason}).")


class BlobNotFoundError(NotFoundError):
    """Raised when the content store holds no blob for a hash."""

    def __init__(self, content_hash: str) -> None:
        self.content_hash = content_hash
        super().__init__(f"Blob not found: {content_hash}.")


class MissingBlobError(BundlerError):
    """Raised when a registry entry references a blob that is gone."""

    def __init__(self, content_hash: str, original_name: str) -> None:
        self.content_hash = content_hash
        self.original_name = original_name
        super().__init__(
            f"Bundle file '{original_name}' references missing blob {content_hash}. "
            "The content store and registry are inconsistent."
        )


class CorruptSnapshotError(BundlerError):
    """Raised when the persisted registry snapshot is malformed."""


class PersistenceError(BundlerError):
    """Raised when the registry snapshot cannot be written."""


class StorageIOError(BundlerError):
    """Raised when reading or writing a blob fails."""


class ArchiveIntegrityError(BundlerError):
    """Raised when a blob's size differs from its recorded size."""

    def __init__(self, content_hash: str, original_name: str, expected: int, actual: int) -> None:
        self.content_hash = content_hash
        self.original_name = original_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Archive integrity check failed for '{original_name}' ({content_hash}): "
            f"recorded size={expected}, stored size={actual}."
        )


def is_not_found(error: BaseException) -> bool:
    """Return whether an error should surface as a not-found response."""
    return isinstance(error, NotFoundError)
