"""Runtime configuration model for the bundler.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    BLOBS_DIR_NAME,
    DEFAULT_ARCHIVE_SPOOL_BYTES,
    DEFAULT_COPY_CHUNK_BYTES,
    DEFAULT_DATA_ROOT,
    SNAPSHOT_FILE_NAME,
)
from core.errors import BundlerConfigError


@dataclass(frozen=True)
class BundlerConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Storage root holding the blob directory and snapshot file.
        copy_chunk_bytes: Read size used while hashing and copying content.
        archive_spool_bytes: In-memory limit before built archives spill to disk.
    """

    data_root: Path
    copy_chunk_bytes: int = DEFAULT_COPY_CHUNK_BYTES
    archive_spool_bytes: int = DEFAULT_ARCHIVE_SPOOL_BYTES

    @classmethod
    def from_env(cls) -> "BundlerConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            BundlerConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("BUNDLER_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        copy_chunk_bytes = _parse_positive_int(
            "BUNDLER_COPY_CHUNK_BYTES",
            os.getenv("BUNDLER_COPY_CHUNK_BYTES", str(DEFAULT_COPY_CHUNK_BYTES)),
        )
        archive_spool_bytes = _parse_positive_int(
            "BUNDLER_ARCHIVE_SPOOL_BYTES",
            os.getenv("BUNDLER_ARCHIVE_SPOOL_BYTES", str(DEFAULT_ARCHIVE_SPOOL_BYTES)),
        )
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            copy_chunk_bytes=copy_chunk_bytes,
            archive_spool_bytes=archive_spool_bytes,
        )

    @property
    def blobs_dir(self) -> Path:
        """Directory holding one file per content hash."""
        return self.data_root / BLOBS_DIR_NAME

    @property
    def snapshot_path(self) -> Path:
        """Registry snapshot file path."""
        return self.data_root / SNAPSHOT_FILE_NAME


def _parse_positive_int(variable_name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        variable_name: Environment variable name, for error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        BundlerConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise BundlerConfigError(
            f"Invalid {variable_name} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a positive byte count."
        ) from error
    if value <= 0:
        raise BundlerConfigError(
            f"Invalid {variable_name} value: expected a positive integer, got {value}. "
            f"Set {variable_name} to a positive byte count."
        )
    return value
