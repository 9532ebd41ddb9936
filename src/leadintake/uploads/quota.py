"""Storage quota snapshot for an upload batch."""

import logging

from leadintake.exceptions import BackendUnavailable, StorageError
from leadintake.storage.base import StorageBackend
from leadintake.uploads.models import QuotaSnapshot

logger = logging.getLogger(__name__)


class QuotaTracker:
    """Reads the backend quota once per batch.

    The snapshot is not refreshed while the batch runs; the orchestrator
    adds file sizes to ``used`` locally as it dispatches uploads.
    """

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    async def fetch(self) -> QuotaSnapshot:
        """Read current usage and limit.

        Raises:
            BackendUnavailable: If the quota query fails
        """
        try:
            quota = await self._backend.get_quota()
        except BackendUnavailable:
            raise
        except StorageError as e:
            raise BackendUnavailable(str(e)) from e

        logger.info(
            "Storage quota read",
            extra={
                "backend": self._backend.get_backend_name(),
                "usage_bytes": quota.used,
                "limit_bytes": quota.limit,
            },
        )
        return QuotaSnapshot(limit=quota.limit, used=quota.used)
