"""
File Storage

Stores uploaded proofs, signed medical certifications and generated fax
documents. Two backends:

- LocalStorage: files under a directory (development, tests)
- S3Storage: an S3-compatible bucket via boto3

Storage calls are blocking; async callers wrap them in asyncio.to_thread.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import boto3
from botocore.exceptions import ClientError

from vulcan.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a file cannot be stored or read."""


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def get_bytes(self, key: str) -> bytes:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def url_for(self, key: str, expires_in: int = 3600) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        if ".." in Path(safe_key).parts:
            raise StorageError(f"Invalid storage key: {key}")
        return self.root / safe_key

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def get_bytes(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise StorageError(f"File not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def url_for(self, key: str, expires_in: int = 3600) -> str:
        return f"{settings.public_api_url.rstrip('/')}/api/v1/files/{key.lstrip('/')}"


@dataclass(frozen=True)
class S3Storage(Storage):
    bucket: str
    region: str | None = None
    endpoint_url: str | None = None

    def _client(self):
        return boto3.client("s3", region_name=self.region, endpoint_url=self.endpoint_url)

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra: dict[str, str] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except ClientError as e:
            raise StorageError(f"Failed to store {key}: {e}") from e

    def get_bytes(self, key: str) -> bytes:
        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        return obj["Body"].read()

    def exists(self, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False

    def url_for(self, key: str, expires_in: int = 3600) -> str:
        return self._client().generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )


_storage: Storage | None = None


def get_storage() -> Storage:
    """Return the configured storage backend."""
    global _storage
    if _storage is None:
        backend = settings.storage_backend.strip().lower()
        if backend == "s3":
            if not settings.s3_bucket:
                raise StorageError("S3_BUCKET must be set when STORAGE_BACKEND=s3")
            _storage = S3Storage(
                bucket=settings.s3_bucket,
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
            )
        else:
            _storage = LocalStorage(root=Path(settings.storage_local_root).resolve())
        logger.info(f"Using {backend} file storage")
    return _storage
