"""Pytest configuration and shared fixtures."""

import asyncio
import io
from typing import BinaryIO, Dict, Iterable, Optional

import pytest

from leadintake.exceptions import StorageError
from leadintake.storage.base import StorageBackend, StorageQuota, StoredFile
from leadintake.uploads.models import FileSubmission, UploadTags


class FakeStorageBackend(StorageBackend):
    """In-memory backend with per-file delays and failures."""

    def __init__(
        self,
        limit: Optional[int] = None,
        used: int = 0,
        fail_on: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
        quota_error: Optional[Exception] = None,
        delete_error: Optional[Exception] = None,
    ):
        self.limit = limit
        self.used = used
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.quota_error = quota_error
        self.delete_error = delete_error
        self.files: Dict[str, tuple[bytes, Dict[str, str]]] = {}
        self.quota_calls = 0
        self.create_calls: list[str] = []
        self.delete_calls: list[str] = []

    async def get_quota(self) -> StorageQuota:
        self.quota_calls += 1
        if self.quota_error is not None:
            raise self.quota_error
        return StorageQuota(limit=self.limit, used=self.used)

    async def create_file(
        self, file_name: str, content_type: str, file_data: BinaryIO, tags: Dict[str, str]
    ) -> StoredFile:
        self.create_calls.append(file_name)
        await asyncio.sleep(self.delays.get(file_name, 0))
        if file_name in self.fail_on:
            raise StorageError(f"upload of {file_name} rejected")

        file_id = f"id-{file_name}"
        self.files[file_id] = (file_data.read(), dict(tags))
        return StoredFile(id=file_id, download_link=f"https://files.example/{file_name}")

    async def delete_file(self, file_id: str) -> None:
        self.delete_calls.append(file_id)
        if self.delete_error is not None:
            raise self.delete_error
        self.files.pop(file_id, None)

    def get_backend_name(self) -> str:
        return "fake"


def make_submission(index: int, name: str, content: bytes = b"data", size: Optional[int] = None) -> FileSubmission:
    """Build a submission backed by an in-memory stream."""
    return FileSubmission(
        index=index,
        name=name,
        size=len(content) if size is None else size,
        opener=lambda: io.BytesIO(content),
        content_type="text/plain",
    )


@pytest.fixture
def tags() -> UploadTags:
    return UploadTags(
        lead="lead-123",
        email="jane@example.com",
        first_name="Jane",
        last_name="Doe",
        mobile="+61400000000",
    )


@pytest.fixture
def backend() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def backend_factory():
    """Build fake backends with custom quota, delays and failures."""
    return FakeStorageBackend


@pytest.fixture(name="make_submission")
def make_submission_fixture():
    return make_submission
