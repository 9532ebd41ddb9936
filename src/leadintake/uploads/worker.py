"""Single-file upload worker."""

import logging
from typing import Optional

from leadintake.exceptions import ErrorKind
from leadintake.storage.base import StorageBackend
from leadintake.uploads.cancellation import CancelToken
from leadintake.uploads.models import Failed, FileSubmission, UploadOutcome, Uploaded, UploadTags

logger = logging.getLogger(__name__)


class UploadWorker:
    """Uploads one attachment and reports a single outcome.

    A failure fires the batch cancel token; the worker never retries and
    never deletes anything itself.
    """

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    async def upload(
        self, submission: FileSubmission, tags: UploadTags, cancel_token: CancelToken
    ) -> Optional[UploadOutcome]:
        """Upload a submission unless the batch was already cancelled.

        Returns:
            The outcome, or None when skipped because of cancellation
        """
        if cancel_token.cancelled:
            logger.debug(
                "Upload skipped, batch cancelled",
                extra={"file_name": submission.name, "index": submission.index},
            )
            return None

        logger.debug(
            "Upload started",
            extra={"file_name": submission.name, "index": submission.index, "size_bytes": submission.size},
        )

        try:
            stream = submission.open()
        except Exception as e:
            logger.error(
                "Failed to open attachment",
                extra={"file_name": submission.name, "index": submission.index, "error": str(e)},
            )
            cancel_token.cancel(ErrorKind.PARTIAL_FAILURE)
            return Failed(index=submission.index, reason=ErrorKind.OPEN_ERROR)

        try:
            stored = await self._backend.create_file(
                file_name=submission.name,
                content_type=submission.content_type,
                file_data=stream,
                tags=tags.as_metadata(),
            )
        except Exception as e:
            logger.error(
                "Failed to upload attachment",
                extra={
                    "file_name": submission.name,
                    "index": submission.index,
                    "email": tags.email,
                    "error": str(e),
                },
            )
            cancel_token.cancel(ErrorKind.PARTIAL_FAILURE)
            return Failed(index=submission.index, reason=ErrorKind.BACKEND_ERROR)
        finally:
            stream.close()

        logger.debug(
            "Upload finished",
            extra={"file_name": submission.name, "file_id": stored.id, "link": stored.download_link},
        )
        return Uploaded(index=submission.index, id=stored.id, download_link=stored.download_link)
