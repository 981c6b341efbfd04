import asyncio
import hashlib
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Final

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from pocket_cdn.core.config import Settings, get_settings
from pocket_cdn.services.compression import GZIP_SUFFIX

logger = logging.getLogger(__name__)

CHUNK_SIZE: Final[int] = 64 * 1024
_MISSING_KEY_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


@dataclass
class ObjectInfo:
    key: str
    size: int
    content_type: str | None = None
    content_encoding: str | None = None

    @property
    def public_name(self) -> str:
        """Name the object is served under: gzip variants drop their suffix."""
        if self.content_encoding == "gzip" and self.key.endswith(GZIP_SUFFIX):
            return self.key[: -len(GZIP_SUFFIX)]
        return self.key


@dataclass
class StoredObject:
    key: str
    size: int
    stream: BinaryIO
    etag: str | None = None
    content_type: str | None = None
    content_encoding: str | None = None

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        try:
            while chunk := self.stream.read(chunk_size):
                yield chunk
        finally:
            self.stream.close()

    def close(self) -> None:
        self.stream.close()


class StorageService:
    """Default S3-compatible storage backend."""

    scheme: Final[str] = "s3"

    def __init__(self, settings: Settings | None = None, client=None) -> None:
        self.settings = settings or get_settings()
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=str(self.settings.s3_endpoint) if self.settings.s3_endpoint else None,
                aws_access_key_id=self.settings.s3_access_key,
                aws_secret_access_key=self.settings.s3_secret_key,
                region_name=self.settings.s3_region,
                config=Config(signature_version="s3v4"),
            )
        self.client = client
        self.bucket = self.settings.s3_bucket

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        content_encoding: str | None = None,
    ) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if content_encoding:
            params["ContentEncoding"] = content_encoding

        await asyncio.to_thread(self.client.put_object, **params)
        logger.debug("Stored s3://%s/%s (%d bytes)", self.bucket, key, len(data))

    async def get_object(self, key: str) -> StoredObject | None:
        def _get() -> dict | None:
            try:
                return self.client.get_object(Bucket=self.bucket, Key=key)
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                    return None
                raise

        response = await asyncio.to_thread(_get)
        if response is None:
            return None
        return StoredObject(
            key=key,
            size=response.get("ContentLength", 0),
            stream=response["Body"],
            etag=(response.get("ETag") or "").strip('"') or None,
            content_type=response.get("ContentType"),
            content_encoding=response.get("ContentEncoding"),
        )

    async def delete_object(self, key: str) -> None:
        # S3 treats deleting a missing key as success
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        logger.debug("Deleted s3://%s/%s", self.bucket, key)

    async def list_objects(self) -> list[ObjectInfo]:
        def _list() -> list[ObjectInfo]:
            items: list[ObjectInfo] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for entry in page.get("Contents", []):
                    # Listings carry no HTTP metadata, so ask for it per object
                    head = self.client.head_object(Bucket=self.bucket, Key=entry["Key"])
                    items.append(
                        ObjectInfo(
                            key=entry["Key"],
                            size=entry.get("Size", 0),
                            content_type=head.get("ContentType"),
                            content_encoding=head.get("ContentEncoding"),
                        )
                    )
            return items

        return await asyncio.to_thread(_list)


class LocalStorageService(StorageService):
    """Local filesystem storage intended for development use.

    Object bytes live under ``<root>/objects`` and their metadata as JSON under
    ``<root>/meta``, mirroring the key layout.
    """

    scheme: Final[str] = "local"

    def __init__(  # type: ignore[override]
        self,
        settings: Settings | None = None,
        base_path: Path | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_path = Path(base_path or self.settings.local_storage_dir).resolve()
        self.objects_path = self.base_path / "objects"
        self.meta_path = self.base_path / "meta"
        self.objects_path.mkdir(parents=True, exist_ok=True)
        self.meta_path.mkdir(parents=True, exist_ok=True)

    def _key_path(self, root: Path, key: str, suffix: str = "") -> Path:
        # Prevent directory traversal by resolving inside the root
        candidate = root.joinpath(*Path(key + suffix).parts).resolve()
        if not candidate.is_relative_to(root):
            raise ValueError("Invalid storage key")
        return candidate

    def _object_path(self, key: str) -> Path:
        return self._key_path(self.objects_path, key)

    def _metadata_path(self, key: str) -> Path:
        return self._key_path(self.meta_path, key, ".json")

    def _read_metadata(self, key: str) -> dict:
        try:
            return json.loads(self._metadata_path(key).read_text(encoding="utf-8"))
        except (FileNotFoundError, json.JSONDecodeError):
            return {}

    async def put_object(  # type: ignore[override]
        self,
        key: str,
        data: bytes,
        content_type: str,
        content_encoding: str | None = None,
    ) -> None:
        target = self._object_path(key)
        metadata_target = self._metadata_path(key)
        metadata = {
            "content_type": content_type,
            "content_encoding": content_encoding,
            "etag": hashlib.md5(data).hexdigest(),
        }

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            metadata_target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            metadata_target.write_text(json.dumps(metadata), encoding="utf-8")

        await asyncio.to_thread(_write)
        logger.debug("Stored %s (%d bytes)", target, len(data))

    async def get_object(self, key: str) -> StoredObject | None:  # type: ignore[override]
        path = self._object_path(key)

        def _open() -> StoredObject | None:
            if not path.is_file():
                return None
            metadata = self._read_metadata(key)
            return StoredObject(
                key=key,
                size=path.stat().st_size,
                stream=path.open("rb"),
                etag=metadata.get("etag"),
                content_type=metadata.get("content_type"),
                content_encoding=metadata.get("content_encoding"),
            )

        return await asyncio.to_thread(_open)

    async def delete_object(self, key: str) -> None:  # type: ignore[override]
        target = self._object_path(key)
        metadata_target = self._metadata_path(key)

        def _delete() -> None:
            target.unlink(missing_ok=True)
            metadata_target.unlink(missing_ok=True)

        await asyncio.to_thread(_delete)
        logger.debug("Deleted %s", target)

    async def list_objects(self) -> list[ObjectInfo]:  # type: ignore[override]
        def _list() -> list[ObjectInfo]:
            items: list[ObjectInfo] = []
            for path in sorted(self.objects_path.rglob("*")):
                if not path.is_file():
                    continue
                key = path.relative_to(self.objects_path).as_posix()
                metadata = self._read_metadata(key)
                items.append(
                    ObjectInfo(
                        key=key,
                        size=path.stat().st_size,
                        content_type=metadata.get("content_type"),
                        content_encoding=metadata.get("content_encoding"),
                    )
                )
            return items

        return await asyncio.to_thread(_list)


_storage_service: StorageService | LocalStorageService | None = None


def get_storage_service() -> StorageService | LocalStorageService:
    global _storage_service
    if _storage_service is None:
        settings = get_settings()
        if settings.storage_backend == "local":
            _storage_service = LocalStorageService(settings)
        else:
            _storage_service = StorageService(settings)
        logger.info("Using %s storage backend", _storage_service.scheme)
    return _storage_service


def reset_storage_service() -> None:
    global _storage_service
    _storage_service = None
