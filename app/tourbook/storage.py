from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class ObjectInfo:
    key: str
    size: int
    content_type: str | None
    last_modified: datetime | None


class Storage:
    public_base_url: str = ""

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def head(self, key: str) -> ObjectInfo:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{key.lstrip('/')}"

    def key_for_url(self, url: str) -> str:
        """Inverse of public_url; URLs outside the public base fall back to their path."""
        base = self.public_base_url.rstrip("/")
        if base and url.startswith(base + "/"):
            return url[len(base) + 1:]
        return extract_image_key(url)


def extract_image_key(url: str) -> str:
    """Path of an absolute URL without the leading slash; anything else is taken as a key already."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url
    return parsed.path.lstrip("/")


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    public_base_url: str = "http://localhost:5000/media"

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        p = (self.root / safe_key).resolve()
        if self.root.resolve() not in p.parents:
            raise StorageError(f"Invalid storage key: {key!r}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        p = self._path(key)
        if not p.is_file():
            raise StorageError(f"Object not found: {key}")
        return p.open("rb")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> None:
        p = self._path(key)
        if not p.is_file():
            raise StorageError(f"Object not found: {key}")
        p.unlink()

    def head(self, key: str) -> ObjectInfo:
        p = self._path(key)
        if not p.is_file():
            raise StorageError(f"Object not found: {key}")
        st = p.stat()
        return ObjectInfo(
            key=key,
            size=st.st_size,
            content_type=mimetypes.guess_type(p.name)[0],
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )


@dataclass(frozen=True)
class S3Storage(Storage):
    """S3-compatible bucket (Cloudflare R2, DigitalOcean Spaces, AWS)."""

    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def _client(self):
        try:
            import boto3  # type: ignore
        except Exception as e:  # pragma: no cover
            raise StorageError("boto3 required for S3 storage. Install boto3.") from e
        endpoint = self.endpoint
        if endpoint and not endpoint.startswith(("http://", "https://")):
            endpoint = f"https://{endpoint}"
        return boto3.client(
            "s3",
            endpoint_url=endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        extra: dict[str, object] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Download failed for {key}: {e}") from e
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._client().head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False

    def delete(self, key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client().delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Delete failed for {key}: {e}") from e

    def head(self, key: str) -> ObjectInfo:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            meta = self._client().head_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Head request failed for {key}: {e}") from e
        return ObjectInfo(
            key=key,
            size=int(meta.get("ContentLength") or 0),
            content_type=meta.get("ContentType"),
            last_modified=meta.get("LastModified"),
        )


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    public_base = (config.get("PUBLIC_BUCKET_URL") or "").strip()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "auto").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=public_base,
        )
    # default local
    root = Path(os.getcwd()) / "storage"
    return LocalStorage(root=root, public_base_url=public_base or "http://localhost:5000/media")
