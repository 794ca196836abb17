import io
import os
import uuid

import pytest

from bucketkit import create_buckets
from bucketkit.options import (
    CreateBucketOptions,
    CreateBucketsOptions,
    ListFilesOptions,
    PutFileOptions,
)

REGION = os.getenv("BUCKETKIT_SMOKE_REGION", "us-east-1")

pytestmark = pytest.mark.skipif(
    not os.getenv("BUCKETKIT_SMOKE_TESTS"),
    reason="Set BUCKETKIT_SMOKE_TESTS=1 and AWS credentials to run against Amazon S3.",
)


def _new_bucket(prefix: str) -> str:
    suffix = uuid.uuid4().hex[:12]
    return f"{prefix}-{suffix}".lower()


@pytest.mark.asyncio
async def test_bucket_file_flow():
    buckets = create_buckets("aws", CreateBucketsOptions(region=REGION))
    bucket = _new_bucket("bucketkit-smoke")
    created = False
    try:
        await buckets.create_bucket(bucket, CreateBucketOptions(location=REGION))
        created = True
        assert await buckets.bucket_exists(bucket)

        names = ["cam_1/photo1.jpg", "cam_1/photo2.jpg", "top.txt"]
        for name in names:
            await buckets.put_file(bucket, name, io.BytesIO(b"python-sdk-test-data"),
                                   PutFileOptions(content_type="application/octet-stream"))

        top = await buckets.list_files(bucket)
        assert [f.path for f in top.files] == ["top.txt"]
        assert top.folders == ["cam_1/"]

        nested = await buckets.list_files(bucket, ListFilesOptions(folder="/cam_1", limit=1))
        assert len(nested.files) == 1
        assert nested.next

        meta = await buckets.get_file_metadata(bucket, names[0])
        assert meta.size == len(b"python-sdk-test-data")
        assert await buckets.get_file_metadata(bucket, "images/does-not-exist.jpg") is None

        downloaded = await buckets.get_file_as_buffer(bucket, names[0])
        assert downloaded.data == b"python-sdk-test-data"

        stream = await buckets.get_file_as_stream(bucket, names[1])
        assert await stream.read() == b"python-sdk-test-data"
    finally:
        try:
            if created:
                listing = await buckets.list_files(bucket, ListFilesOptions(recursive=True))
                for f in listing.files:
                    await buckets.delete_file(bucket, f.path)
                await buckets.delete_bucket(bucket)
        finally:
            await buckets.close()


@pytest.mark.asyncio
async def test_redirect_to_bucket_region():
    # Default client in one region, bucket in another
    other = "eu-west-1" if REGION != "eu-west-1" else "us-west-2"
    buckets = create_buckets("aws", CreateBucketsOptions(region=REGION))
    bucket = _new_bucket("bucketkit-redirect")
    try:
        await buckets.create_bucket(bucket, CreateBucketOptions(location=other))
        await buckets.put_file(bucket, "a.txt", b"a")
        assert (await buckets.get_file_as_buffer(bucket, "a.txt")).data == b"a"
        assert other in buckets._regional_clients
        await buckets.delete_file(bucket, "a.txt")
        await buckets.delete_bucket(bucket)
    finally:
        await buckets.close()
