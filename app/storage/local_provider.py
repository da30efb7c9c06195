"""
Local filesystem storage provider for development and tests.
"""
from typing import Optional, BinaryIO
from pathlib import Path

from ..config import settings
from .provider import StorageProvider


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""
    name = "local"

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.local_storage_dir)
        (self.base_dir / "uploads").mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / "uploads" / clean_key

    def save(self, stream: BinaryIO, key: str, content_type: Optional[str] = None) -> None:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(stream.read())

    def open(self, key: str) -> Optional[bytes]:
        path = self._get_path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        path.unlink(missing_ok=True)
