import hashlib
import io

import pytest
from botocore.exceptions import ClientError

from pocket_cdn.core.config import Settings
from pocket_cdn.services.storage import LocalStorageService, ObjectInfo, StorageService


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorageService(Settings(LOCAL_STORAGE_DIR=str(tmp_path)))


@pytest.mark.asyncio
async def test_local_round_trip_keeps_metadata(local_storage):
    await local_storage.put_object(
        "site.css.gz", b"\x1f\x8bpayload", content_type="text/css", content_encoding="gzip"
    )

    stored = await local_storage.get_object("site.css.gz")
    assert stored is not None
    assert stored.size == len(b"\x1f\x8bpayload")
    assert stored.content_type == "text/css"
    assert stored.content_encoding == "gzip"
    assert stored.etag == hashlib.md5(b"\x1f\x8bpayload").hexdigest()
    assert b"".join(stored.iter_chunks(chunk_size=3)) == b"\x1f\x8bpayload"


@pytest.mark.asyncio
async def test_local_last_write_wins(local_storage):
    await local_storage.put_object("a.bin", b"one", content_type="application/octet-stream")
    await local_storage.put_object("a.bin", b"two!", content_type="application/x-two")

    stored = await local_storage.get_object("a.bin")
    assert b"".join(stored.iter_chunks()) == b"two!"
    assert stored.content_type == "application/x-two"
    assert stored.content_encoding is None


@pytest.mark.asyncio
async def test_local_missing_object_is_none(local_storage):
    assert await local_storage.get_object("nope.txt") is None


@pytest.mark.asyncio
async def test_local_rejects_keys_outside_root(local_storage):
    with pytest.raises(ValueError):
        await local_storage.put_object("../escape.txt", b"x", content_type="text/plain")
    with pytest.raises(ValueError):
        await local_storage.get_object("../../etc/passwd")


@pytest.mark.asyncio
async def test_local_listing(local_storage):
    await local_storage.put_object("b.png", b"12345", content_type="image/png")
    await local_storage.put_object(
        "a.txt.gz", b"123", content_type="text/plain", content_encoding="gzip"
    )

    listed = await local_storage.list_objects()
    assert listed == [
        ObjectInfo(key="a.txt.gz", size=3, content_type="text/plain", content_encoding="gzip"),
        ObjectInfo(key="b.png", size=5, content_type="image/png", content_encoding=None),
    ]
    assert [item.public_name for item in listed] == ["a.txt", "b.png"]


@pytest.mark.asyncio
async def test_local_delete_removes_object_and_metadata(local_storage):
    await local_storage.put_object(
        "a.txt.gz", b"zz", content_type="text/plain", content_encoding="gzip"
    )

    await local_storage.delete_object("a.txt.gz")
    await local_storage.delete_object("never-stored.txt")

    assert await local_storage.get_object("a.txt.gz") is None
    assert not local_storage._metadata_path("a.txt.gz").exists()
    assert await local_storage.list_objects() == []


def test_public_name_keeps_plain_gz_uploads():
    archive = ObjectInfo(key="backup.tar.gz", size=1, content_type="application/octet-stream")
    assert archive.public_name == "backup.tar.gz"


class StubS3Client:
    """Just enough of the boto3 S3 client for StorageService."""

    def __init__(self) -> None:
        self.objects: dict[str, dict] = {}

    def put_object(self, Bucket, Key, Body, ContentType, ContentEncoding=None):
        self.objects[Key] = {
            "Body": Body,
            "ContentType": ContentType,
            "ContentEncoding": ContentEncoding,
        }

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        item = self.objects[Key]
        response = {
            "Body": io.BytesIO(item["Body"]),
            "ContentLength": len(item["Body"]),
            "ContentType": item["ContentType"],
            "ETag": f'"{hashlib.md5(item["Body"]).hexdigest()}"',
        }
        if item["ContentEncoding"]:
            response["ContentEncoding"] = item["ContentEncoding"]
        return response

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_object(self, Bucket, Key):
        item = self.objects[Key]
        return {"ContentType": item["ContentType"], "ContentEncoding": item["ContentEncoding"]}

    def get_paginator(self, operation):
        assert operation == "list_objects_v2"
        client = self

        class _Paginator:
            def paginate(self, Bucket):
                yield {
                    "Contents": [
                        {"Key": key, "Size": len(item["Body"])}
                        for key, item in sorted(client.objects.items())
                    ]
                }

        return _Paginator()


@pytest.fixture
def s3_storage():
    return StorageService(Settings(S3_BUCKET="cdn-test"), client=StubS3Client())


@pytest.mark.asyncio
async def test_s3_put_sets_encoding_only_for_gzip(s3_storage):
    await s3_storage.put_object(
        "a.js.gz", b"zz", content_type="application/javascript", content_encoding="gzip"
    )
    await s3_storage.put_object("b.png", b"pp", content_type="image/png")

    assert s3_storage.client.objects["a.js.gz"]["ContentEncoding"] == "gzip"
    assert s3_storage.client.objects["b.png"]["ContentEncoding"] is None


@pytest.mark.asyncio
async def test_s3_get_strips_etag_quotes(s3_storage):
    await s3_storage.put_object("b.png", b"pp", content_type="image/png")

    stored = await s3_storage.get_object("b.png")
    assert stored.etag == hashlib.md5(b"pp").hexdigest()
    assert stored.content_type == "image/png"
    assert stored.content_encoding is None
    assert b"".join(stored.iter_chunks()) == b"pp"


@pytest.mark.asyncio
async def test_s3_missing_key_is_none_but_other_errors_propagate(s3_storage):
    assert await s3_storage.get_object("missing") is None

    def denied(Bucket, Key):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")

    s3_storage.client.get_object = denied
    with pytest.raises(ClientError):
        await s3_storage.get_object("missing")


@pytest.mark.asyncio
async def test_s3_listing_includes_http_metadata(s3_storage):
    await s3_storage.put_object(
        "a.js.gz", b"zz", content_type="application/javascript", content_encoding="gzip"
    )
    await s3_storage.put_object("b.png", b"ppp", content_type="image/png")

    listed = await s3_storage.list_objects()
    assert listed == [
        ObjectInfo(
            key="a.js.gz", size=2, content_type="application/javascript", content_encoding="gzip"
        ),
        ObjectInfo(key="b.png", size=3, content_type="image/png", content_encoding=None),
    ]


@pytest.mark.asyncio
async def test_s3_delete_removes_key(s3_storage):
    await s3_storage.put_object("b.png", b"pp", content_type="image/png")

    await s3_storage.delete_object("b.png")
    await s3_storage.delete_object("b.png")

    assert await s3_storage.get_object("b.png") is None
