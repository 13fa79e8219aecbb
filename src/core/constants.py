"""Core constants used across bundler modules.

This module centralizes storage layout names and tuning defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path("data")
BLOBS_DIR_NAME = "files"
SNAPSHOT_FILE_NAME = "bundles.json"
DEFAULT_DOWNLOAD_DIR = "output"
ARCHIVE_SUFFIX = ".tar.gz"
HASH_ALGORITHM = "sha256"
HASH_HEX_LENGTH = 64
BUNDLE_ID_BYTES = 12
MAX_BUNDLE_ID_ATTEMPTS = 8
DEFAULT_COPY_CHUNK_BYTES = 1024 * 1024
DEFAULT_ARCHIVE_SPOOL_BYTES = 16 * 1024 * 1024
ARCHIVE_ENTRY_MODE = 0o644
SNAPSHOT_CREATED_AT_KEY = "createdAt"
SNAPSHOT_FILES_KEY = "fileReferences"
LEGACY_SNAPSHOT_FILES_KEY = "fileMetadataList"
