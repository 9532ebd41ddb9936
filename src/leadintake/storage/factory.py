"""Storage backend selection."""

from leadintake.core.config import settings
from leadintake.storage.base import StorageBackend
from leadintake.storage.gcs import gcs_backend
from leadintake.storage.local import local_backend


def get_storage_backend() -> StorageBackend:
    """Return the backend configured by STORAGE_BACKEND.

    Raises:
        ValueError: If the backend name is unknown or GCS is not configured
    """
    if settings.STORAGE_BACKEND == "gcs":
        if not settings.GCS_BUCKET_NAME:
            raise ValueError("GCS_BUCKET_NAME not configured")
        return gcs_backend
    if settings.STORAGE_BACKEND == "local":
        return local_backend
    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
