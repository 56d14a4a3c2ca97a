"""Fake blob storage — keeps uploads in memory for testing."""

from storage.blob.port import BlobStorage


class FakeBlobStorage(BlobStorage):
    """Blob storage that records uploads in memory for test assertions."""

    def __init__(self, base_url: str = "https://storage.test/atelier"):
        self.base_url = base_url.rstrip("/")
        self.blobs: dict[str, str | bytes] = {}
        self.should_succeed = True

    def configure(self, should_succeed: bool = True):
        self.should_succeed = should_succeed

    def upload(self, path: str, data: str | bytes) -> str:
        if not self.should_succeed:
            raise OSError(f"Upload failed for {path}")
        self.blobs[path] = data
        return f"{self.base_url}/{path}"

    def reset(self):
        self.blobs.clear()
        self.should_succeed = True
