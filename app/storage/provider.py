from typing import BinaryIO, Optional


class StorageProvider:
    name = "base"

    def get_download_url(self, key: str, expires_s: int) -> Optional[str]:
        """Short-lived URL for providers that cannot serve bytes directly."""
        return None

    def save(self, stream: BinaryIO, key: str, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> Optional[bytes]:
        """Raw content when the provider can serve it directly, else None."""
        return None

    def delete(self, key: str) -> None:
        raise NotImplementedError
