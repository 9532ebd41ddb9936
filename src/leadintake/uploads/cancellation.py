"""One-shot cancellation signal shared by the workers of a batch."""

import asyncio
import logging
from typing import Optional

from leadintake.exceptions import ErrorKind

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation broadcast to every worker of a batch.

    The first call to :meth:`cancel` wins: its reason is kept and later
    calls are no-ops. The token is never re-armed.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[ErrorKind] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[ErrorKind]:
        return self._reason

    def cancel(self, reason: ErrorKind) -> bool:
        """Fire the signal.

        Returns:
            True if this call fired it, False if it was already fired
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        logger.debug("Upload batch cancelled", extra={"reason": reason.value})
        return True
