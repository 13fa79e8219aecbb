"""Public SDK surface for the bundler.

This module provides a stable import path for library users.
It re-exports the client facade, typed models, and error types.
"""

from __future__ import annotations

from core.config import BundlerConfig
from core.errors import (
    ArchiveIntegrityError,
    BlobNotFoundError,
    BundleNotFoundError,
    BundlerError,
    BundlerInputError,
    CorruptSnapshotError,
    MissingBlobError,
    NotFoundError,
    PersistenceError,
    StorageIOError,
    is_not_found,
)
from core.types import Bundle, BundleSummary, FileReference, UploadFile
from store.bundle_sdk import BundlerClient, initialize

__all__ = [
    "ArchiveIntegrityError",
    "BlobNotFoundError",
    "Bundle",
    "BundleNotFoundError",
    "BundleSummary",
    "BundlerClient",
    "BundlerConfig",
    "BundlerError",
    "BundlerInputError",
    "CorruptSnapshotError",
    "FileReference",
    "MissingBlobError",
    "NotFoundError",
    "PersistenceError",
    "StorageIOError",
    "UploadFile",
    "initialize",
    "is_not_found",
]
