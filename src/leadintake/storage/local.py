"""Local filesystem storage backend."""

import asyncio
import json
from pathlib import Path
from typing import BinaryIO, Dict
from uuid import uuid4

from leadintake.core.config import settings
from leadintake.exceptions import BackendUnavailable, StorageError
from leadintake.storage.base import StorageBackend, StorageQuota, StoredFile

METADATA_SUFFIX = ".metadata.json"


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend.

    Files live under ``LOCAL_STORAGE_PATH/{lead}/``; tags are written to a
    JSON sidecar next to each file.
    """

    def __init__(self):
        self.base_path = Path(settings.LOCAL_STORAGE_PATH)

    def get_target_path(self, lead_id: str, file_name: str) -> Path:
        safe_name = self._sanitize_filename(file_name)
        return self.base_path / self._sanitize_filename(lead_id) / f"{uuid4().hex}_{safe_name}"

    async def get_quota(self) -> StorageQuota:
        try:
            used = await asyncio.to_thread(self._sum_usage)
        except OSError as e:
            raise BackendUnavailable(f"Failed to read storage usage: {e}") from e
        return StorageQuota(limit=settings.storage_quota_bytes, used=used)

    def _sum_usage(self) -> int:
        if not self.base_path.exists():
            return 0
        return sum(
            path.stat().st_size
            for path in self.base_path.rglob("*")
            if path.is_file() and not path.name.endswith(METADATA_SUFFIX)
        )

    async def create_file(
        self, file_name: str, content_type: str, file_data: BinaryIO, tags: Dict[str, str]
    ) -> StoredFile:
        target_path = self.get_target_path(tags.get("lead", "unassigned"), file_name)
        try:
            await asyncio.to_thread(self._write, target_path, file_name, content_type, file_data, tags)
        except OSError as e:
            raise StorageError(f"Failed to store {file_name}: {e}") from e

        return StoredFile(
            id=str(target_path.relative_to(self.base_path)),
            download_link=target_path.resolve().as_uri(),
        )

    @staticmethod
    def _write(
        target_path: Path, file_name: str, content_type: str, file_data: BinaryIO, tags: Dict[str, str]
    ) -> None:
        target_path.parent.mkdir(parents=True, exist_ok=True)

        # Stream write in chunks
        with open(target_path, "wb") as f:
            while chunk := file_data.read(65536):  # 64KB chunks
                f.write(chunk)

        metadata = {**tags, "fileName": file_name, "contentType": content_type}
        metadata_path = target_path.with_name(target_path.name + METADATA_SUFFIX)
        metadata_path.write_text(json.dumps(metadata), encoding="utf-8")

    async def delete_file(self, file_id: str) -> None:
        target_path = (self.base_path / file_id).resolve()
        if self.base_path.resolve() not in target_path.parents:
            raise StorageError(f"Refusing to delete outside storage root: {file_id}")

        try:
            await asyncio.to_thread(target_path.unlink, True)
            await asyncio.to_thread(
                target_path.with_name(target_path.name + METADATA_SUFFIX).unlink, True
            )
        except OSError as e:
            raise StorageError(f"Failed to delete {file_id}: {e}") from e

    def get_backend_name(self) -> str:
        return "local"


# Singleton instance
local_backend = LocalStorageBackend()
