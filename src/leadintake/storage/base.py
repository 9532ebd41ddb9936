"""Abstract storage backend interface."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Dict, Optional


@dataclass(frozen=True)
class StorageQuota:
    """Usage and limit reported by a backend, in bytes."""

    limit: Optional[int]
    used: int


@dataclass(frozen=True)
class StoredFile:
    """Remote object created by a backend."""

    id: str
    download_link: str


class StorageBackend(ABC):
    """Abstract base class for quota-limited storage backends."""

    @abstractmethod
    async def get_quota(self) -> StorageQuota:
        """Read current usage and limit.

        Raises:
            StorageError: If the backend cannot be queried
        """
        pass

    @abstractmethod
    async def create_file(
        self, file_name: str, content_type: str, file_data: BinaryIO, tags: Dict[str, str]
    ) -> StoredFile:
        """Store a file tagged with lead metadata.

        Args:
            file_name: Original file name
            content_type: MIME type
            file_data: File content stream
            tags: Metadata attached to the stored object

        Returns:
            Identifier and download link of the stored file

        Raises:
            StorageError: If the upload fails
        """
        pass

    @abstractmethod
    async def delete_file(self, file_id: str) -> None:
        """Delete a previously stored file.

        Raises:
            StorageError: If the deletion fails
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass

    @staticmethod
    def _sanitize_filename(filename: str) -> str:
        """Remove path traversal and dangerous characters."""
        safe = filename.replace("../", "").replace("..\\", "")
        safe = safe.replace("/", "_").replace("\\", "_")
        safe = re.sub(r"[^a-zA-Z0-9._-]", "_", safe)
        return safe[:255] or "unnamed"
