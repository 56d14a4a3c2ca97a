"""Blob storage port — abstract interface for persisting binary assets.

Checkout uploads rendered preview images here before the order transaction
runs; orders only ever store the returned reference.
"""

from abc import ABC, abstractmethod


class BlobStorage(ABC):
    """Abstract interface for blob storage adapters."""

    @abstractmethod
    def upload(self, path: str, data: str | bytes) -> str:
        """Store ``data`` at ``path`` and return a URL that serves it."""
        ...
