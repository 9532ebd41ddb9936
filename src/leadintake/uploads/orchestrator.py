"""Concurrent upload of an enquiry's attachments with all-or-nothing rollback."""

import asyncio
import logging
from typing import Optional, Sequence

from leadintake.exceptions import ErrorKind, UploadBatchError
from leadintake.storage.base import StorageBackend
from leadintake.uploads.cancellation import CancelToken
from leadintake.uploads.models import (
    BatchResult,
    Failed,
    FileSubmission,
    QuotaSnapshot,
    Uploaded,
    UploadTags,
)
from leadintake.uploads.worker import UploadWorker

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """Fans out one upload task per attachment and reconciles the batch.

    Quota policy: submissions are pre-checked serially, in input order,
    before their task is created. The running usage starts at the quota
    snapshot's ``used`` and grows by each file's size; once it reaches the
    limit (equality included) the batch is cancelled with
    ``QUOTA_EXCEEDED`` and no further file is dispatched.

    Any failed upload cancels the rest of the batch. A cancelled batch has
    every file it managed to upload deleted in the background and raises
    :class:`UploadBatchError`; a completed batch returns its download links
    in input order.

    The orchestrator is long-lived: it keeps references to pending rollback
    deletions so they can be drained on shutdown.
    """

    def __init__(self, backend: StorageBackend, timeout: Optional[float] = None):
        self._backend = backend
        self._worker = UploadWorker(backend)
        self._timeout = timeout
        self._rollbacks: set[asyncio.Task] = set()

    async def run(
        self, submissions: Sequence[FileSubmission], quota: QuotaSnapshot, tags: UploadTags
    ) -> list[str]:
        """Upload every submission or none of them.

        Args:
            submissions: Attachments in their original order
            quota: Usage and limit read at the start of the batch
            tags: Lead metadata attached to every upload

        Returns:
            Download links in input order

        Raises:
            UploadBatchError: If the quota was reached or an upload failed
        """
        if not submissions:
            return []

        cancel_token = CancelToken()
        tasks = self._dispatch(submissions, quota, tags, cancel_token)

        try:
            await asyncio.wait_for(self._watch(tasks, cancel_token), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Upload batch deadline exceeded",
                extra={"lead": tags.lead, "timeout_seconds": self._timeout},
            )
            cancel_token.cancel(ErrorKind.PARTIAL_FAILURE)
            await self._cancel_remaining_tasks(tasks)
        except asyncio.CancelledError:
            cancel_token.cancel(ErrorKind.PARTIAL_FAILURE)
            await self._cancel_remaining_tasks(tasks)
            self._rollback(self._harvest(tasks).succeeded, tags)
            raise

        result = self._harvest(tasks)

        if cancel_token.cancelled:
            result.aborted = True
            result.error_kind = cancel_token.reason
            logger.error(
                "Upload batch aborted, rolling back",
                extra={
                    "lead": tags.lead,
                    "reason": result.error_kind.value,
                    "uploaded": len(result.succeeded),
                    "failed": len(result.failed),
                    "dispatched": len(tasks),
                    "submitted": len(submissions),
                },
            )
            self._rollback(result.succeeded, tags)
            raise UploadBatchError(result.error_kind)

        logger.info(
            "Upload batch completed",
            extra={"lead": tags.lead, "uploaded": len(result.succeeded)},
        )
        return result.links

    def _dispatch(
        self,
        submissions: Sequence[FileSubmission],
        quota: QuotaSnapshot,
        tags: UploadTags,
        cancel_token: CancelToken,
    ) -> list[asyncio.Task]:
        """Create upload tasks in input order until the quota is reached."""
        projected_usage = quota.used
        tasks: list[asyncio.Task] = []

        for submission in submissions:
            projected_usage += submission.size
            logger.debug(
                "Projected storage usage",
                extra={
                    "file_name": submission.name,
                    "usage_bytes": projected_usage,
                    "limit_bytes": quota.limit,
                },
            )

            if quota.is_exhausted_by(projected_usage):
                logger.error(
                    "Storage quota reached",
                    extra={
                        "lead": tags.lead,
                        "file_name": submission.name,
                        "index": submission.index,
                        "usage_bytes": projected_usage,
                        "limit_bytes": quota.limit,
                    },
                )
                cancel_token.cancel(ErrorKind.QUOTA_EXCEEDED)
                break

            tasks.append(
                asyncio.create_task(
                    self._worker.upload(submission, tags, cancel_token),
                    name=f"upload-{tags.lead}-{submission.index}",
                )
            )

        return tasks

    async def _watch(self, tasks: list[asyncio.Task], cancel_token: CancelToken) -> None:
        """Wait for every task, cancelling the batch on the first failure."""
        for next_done in asyncio.as_completed(tasks):
            outcome = await next_done
            if isinstance(outcome, Failed):
                cancel_token.cancel(ErrorKind.PARTIAL_FAILURE)

    @staticmethod
    async def _cancel_remaining_tasks(tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    def _harvest(tasks: list[asyncio.Task]) -> BatchResult:
        """Collect the outcomes of finished tasks."""
        result = BatchResult()
        for task in tasks:
            if not task.done() or task.cancelled():
                continue
            if task.exception() is not None:
                logger.error(
                    "Upload task crashed",
                    extra={"task": task.get_name(), "error": str(task.exception())},
                )
                continue
            outcome = task.result()
            if outcome is not None:
                result.record(outcome)
        return result

    def _rollback(self, uploads: Sequence[Uploaded], tags: UploadTags) -> None:
        """Delete uploaded files in detached background tasks."""
        for upload in uploads:
            task = asyncio.create_task(self._delete(upload, tags), name=f"rollback-{upload.id}")
            self._rollbacks.add(task)
            task.add_done_callback(self._rollbacks.discard)

    async def _delete(self, upload: Uploaded, tags: UploadTags) -> None:
        try:
            await self._backend.delete_file(upload.id)
            logger.info("Rolled back upload", extra={"lead": tags.lead, "file_id": upload.id})
        except Exception as e:
            logger.error(
                "Failed to roll back upload",
                extra={"lead": tags.lead, "file_id": upload.id, "error": str(e)},
            )

    @property
    def pending_rollbacks(self) -> int:
        return len(self._rollbacks)

    async def drain(self) -> None:
        """Wait for pending rollback deletions to finish."""
        if self._rollbacks:
            await asyncio.gather(*list(self._rollbacks), return_exceptions=True)
