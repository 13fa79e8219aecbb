"""Local upload collection.

This module expands local files and directories into upload streams
so the bundle ingest flow can consume them like submitted files.
"""

from __future__ import annotations

from contextlib import contextmanager
import os
from pathlib import Path
from typing import Generator, Iterable, Iterator

from core.errors import BundlerInputError
from core.types import UploadFile


def collect_upload_paths(paths: Iterable[str | Path]) -> list[Path]:
    """Expand input paths into the regular files to upload.

    Directories are walked recursively in sorted order; files are kept
    in the order given.

    Args:
        paths: Files or directories.

    Returns:
        Ordered file paths.

    Raises:
        BundlerInputError: If a path does not exist.
    """
    collected: list[Path] = []
    for raw_path in paths:
        source_path = Path(raw_path).expanduser()
        if not source_path.exists():
            raise BundlerInputError(
                f"Path not found: {source_path}. Provide an existing file or directory."
            )
        if source_path.is_dir():
            collected.extend(
                file_path for file_path in sorted(source_path.rglob("*")) if file_path.is_file()
            )
        else:
            collected.append(source_path)
    return collected


@contextmanager
def open_uploads(paths: Iterable[str | Path]) -> Iterator[Iterator[UploadFile]]:
    """Expose collected files as lazily opened uploads named by base name.

    Paths are validated up front. Each file is opened only when its
    upload is requested and closed before the next one is opened; at
    most one source file is open at a time.

    Args:
        paths: Files or directories.

    Yields:
        Iterator of upload descriptors; a stream stays open until the
        next upload is requested or the context exits.

    Raises:
        BundlerInputError: If a path is missing or cannot be opened.
    """
    uploads = iter_uploads(collect_upload_paths(paths))
    try:
        yield uploads
    finally:
        uploads.close()


def iter_uploads(file_paths: Iterable[Path]) -> Generator[UploadFile, None, None]:
    """Open, yield, and close one upload at a time."""
    for file_path in file_paths:
        try:
            stream = file_path.open("rb")
        except OSError as error:
            raise BundlerInputError(
                f"Failed to open {file_path} for upload: {error}."
            ) from error
        with stream:
            try:
                declared_size = os.fstat(stream.fileno()).st_size
            except OSError as error:
                raise BundlerInputError(
                    f"Failed to stat {file_path} for upload: {error}."
                ) from error
            yield UploadFile(name=file_path.name, stream=stream, declared_size=declared_size)
