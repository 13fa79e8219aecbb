"""Bundle creation flow.

This module stores each submitted file in the content store and then
registers the resulting file references as one bundle.
"""

from __future__ import annotations

from typing import Iterable

from core.errors import BundlerInputError
from core.logging_config import get_logger
from core.types import Bundle, FileReference, UploadFile
from store.bundle_registry import BundleRegistry
from store.content_store import ContentStore

_LOGGER = get_logger(__name__)


def ingest_uploads(
    uploads: Iterable[UploadFile],
    content_store: ContentStore,
    registry: BundleRegistry,
) -> Bundle:
    """Store uploads and register them as a new bundle.

    Blobs written before a failure are left in place; they are
    content-addressed and reused by later uploads of the same bytes.

    Args:
        uploads: Submitted files in bundle order.
        content_store: Destination blob store.
        registry: Bundle registry to record the bundle in.

    Returns:
        The registered bundle.

    Raises:
        BundlerInputError: If a declared size disagrees with the bytes read.
        StorageIOError: If a blob cannot be stored.
        PersistenceError: If the registry snapshot cannot be written.
    """
    references: list[FileReference] = []
    new_blob_count = 0
    for upload in uploads:
        stored = content_store.put(upload.stream)
        if upload.declared_size is not None and upload.declared_size != stored.size_bytes:
            raise BundlerInputError(
                f"Upload '{upload.name}' declared {upload.declared_size} bytes "
                f"but {stored.size_bytes} bytes were received. Resubmit the file."
            )
        if stored.created:
            new_blob_count += 1
        references.append(
            FileReference(
                content_hash=stored.content_hash,
                original_name=upload.name,
                size_bytes=stored.size_bytes,
            )
        )
    bundle = registry.create(references)
    _LOGGER.info(
        "bundle_ingested",
        bundle_id=bundle.bundle_id,
        file_count=len(references),
        new_blob_count=new_blob_count,
    )
    return bundle
