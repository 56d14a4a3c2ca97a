"""Blob storage adapter registry.

Uses FakeBlobStorage by default; a cloud bucket adapter can be swapped in
with set_blob_storage() at startup.
"""

from storage.blob.port import BlobStorage

_blob_storage: BlobStorage | None = None


def get_blob_storage() -> BlobStorage:
    """Return the configured blob storage adapter (singleton)."""
    global _blob_storage
    if _blob_storage is None:
        from storage.blob.fake_adapter import FakeBlobStorage

        _blob_storage = FakeBlobStorage()
    return _blob_storage


def set_blob_storage(storage: BlobStorage) -> None:
    global _blob_storage
    _blob_storage = storage


def reset_blob_storage():
    """Reset the blob storage singleton (useful for testing)."""
    global _blob_storage
    _blob_storage = None
