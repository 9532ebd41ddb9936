"""Google Cloud Storage backend."""

import asyncio
import logging
from datetime import timedelta
from typing import BinaryIO, Dict, Optional
from uuid import uuid4

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage
from google.oauth2 import service_account

from leadintake.core.config import settings
from leadintake.exceptions import BackendUnavailable, StorageError
from leadintake.storage.base import StorageBackend, StorageQuota, StoredFile

logger = logging.getLogger(__name__)


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend.

    The bucket has no native quota, so the limit comes from
    ``STORAGE_QUOTA_MB`` and usage is the total size of the objects under
    ``UPLOAD_PREFIX``.
    """

    def __init__(self):
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None
        self._signing_credentials: Optional[service_account.Credentials] = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not settings.GCS_BUCKET_NAME:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=settings.GCP_PROJECT_ID or None)
            self._bucket = self._client.bucket(settings.GCS_BUCKET_NAME)

        return self._bucket

    def get_object_name(self, lead_id: str, file_name: str) -> str:
        """Generate the object path for an attachment of a lead."""
        safe_name = self._sanitize_filename(file_name)
        return f"{settings.UPLOAD_PREFIX}/{lead_id}/{uuid4().hex}_{safe_name}"

    async def get_quota(self) -> StorageQuota:
        try:
            used = await asyncio.to_thread(self._sum_usage)
        except (GoogleAPIError, GoogleAuthError, ValueError) as e:
            logger.error(
                "Failed to read storage usage from GCS",
                extra={"bucket": settings.GCS_BUCKET_NAME, "error": str(e)},
            )
            raise BackendUnavailable(f"Failed to read storage quota: {e}") from e

        return StorageQuota(limit=settings.storage_quota_bytes, used=used)

    def _sum_usage(self) -> int:
        bucket = self._get_bucket()
        blobs = bucket.client.list_blobs(bucket, prefix=f"{settings.UPLOAD_PREFIX}/")
        return sum(blob.size or 0 for blob in blobs)

    async def create_file(
        self, file_name: str, content_type: str, file_data: BinaryIO, tags: Dict[str, str]
    ) -> StoredFile:
        """Upload file to GCS under the lead's prefix."""
        object_name = self.get_object_name(tags.get("lead", "unassigned"), file_name)
        try:
            return await asyncio.to_thread(
                self._upload, object_name, file_name, content_type, file_data, tags
            )
        except (GoogleAPIError, GoogleAuthError, ValueError) as e:
            logger.error(
                "Failed to upload file to GCS",
                extra={"object_name": object_name, "error": str(e)},
            )
            raise StorageError(f"Failed to upload {file_name}: {e}") from e

    def _upload(
        self,
        object_name: str,
        file_name: str,
        content_type: str,
        file_data: BinaryIO,
        tags: Dict[str, str],
    ) -> StoredFile:
        bucket = self._get_bucket()
        blob = bucket.blob(object_name)
        blob.metadata = {**tags, "fileName": file_name}
        blob.content_type = content_type
        blob.upload_from_file(file_data, rewind=True, if_generation_match=0)

        # The caller never learns the object's ID if signing fails, so it cannot roll it back.
        try:
            download_link = self._generate_download_link(blob)
        except Exception:
            self._discard(blob)
            raise

        return StoredFile(id=object_name, download_link=download_link)

    def _discard(self, blob: storage.Blob) -> None:
        try:
            blob.delete()
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error(
                "Failed to remove unsigned object from GCS",
                extra={"object_name": blob.name, "error": str(e)},
            )

    def _generate_download_link(self, blob: storage.Blob) -> str:
        """Generate a V4 signed GET URL using the IAM signBlob API."""
        return blob.generate_signed_url(
            version="v4",
            expiration=timedelta(hours=settings.SIGNED_LINK_EXPIRATION_HOURS),
            method="GET",
            credentials=self._get_signing_credentials(),
        )

    def _get_signing_credentials(self) -> service_account.Credentials:
        """Wrap the runtime service account in signing-capable credentials."""
        if self._signing_credentials is None:
            from google.auth import compute_engine, iam
            from google.auth.transport import requests as auth_requests

            # The service account needs roles/iam.serviceAccountTokenCreator on itself.
            credentials = compute_engine.Credentials()
            auth_request = auth_requests.Request()
            credentials.refresh(auth_request)
            service_account_email = credentials.service_account_email

            signer = iam.Signer(
                request=auth_request,
                credentials=credentials,
                service_account_email=service_account_email,
            )
            self._signing_credentials = service_account.Credentials(
                signer=signer,
                service_account_email=service_account_email,
                token_uri="https://oauth2.googleapis.com/token",
            )

        return self._signing_credentials

    async def delete_file(self, file_id: str) -> None:
        try:
            await asyncio.to_thread(self._get_bucket().blob(file_id).delete)
        except NotFound:
            logger.warning("Object already gone", extra={"object_name": file_id})
        except (GoogleAPIError, GoogleAuthError) as e:
            raise StorageError(f"Failed to delete {file_id}: {e}") from e

    def get_backend_name(self) -> str:
        return "gcs"


# Singleton instance
gcs_backend = GCSStorageBackend()
