"""Integration fixtures: a real S3/MinIO bucket.

Configure with ``S3_ENDPOINT``, ``S3_ACCESS_KEY``, ``S3_SECRET_KEY`` and
``S3DB_TEST_BUCKET``. Tests are skipped when the endpoint is unreachable.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import ClientError, ConnectTimeoutError, EndpointConnectionError

from s3db.stores import Boto3S3Backend


@pytest.fixture(scope="session")
def test_bucket_name() -> str:
    return os.getenv("S3DB_TEST_BUCKET", "s3dbunittestbucket")


@pytest.fixture(scope="session")
def minio_client(test_bucket_name: str) -> Generator[boto3.client, None, None]:
    """Real MinIO client for integration tests."""
    endpoint_url = os.getenv("S3_ENDPOINT", "http://localhost:9000")

    # Fail fast when MinIO is not running; boto3 retries would otherwise look like a hang.
    client = boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=os.getenv("S3_ACCESS_KEY", "minioadmin"),
        aws_secret_access_key=os.getenv("S3_SECRET_KEY", "minioadmin"),
        region_name=os.getenv("S3_REGION", "us-east-1"),
        config=Config(connect_timeout=2, read_timeout=5, retries={"max_attempts": 1}),
    )

    try:
        client.head_bucket(Bucket=test_bucket_name)
    except (EndpointConnectionError, ConnectTimeoutError) as error:
        pytest.skip(f"S3 endpoint unavailable: {error}")
    except ClientError as error:
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in {"404", "NoSuchBucket"}:
            client.create_bucket(Bucket=test_bucket_name)
        else:
            raise

    yield client


@pytest.fixture(scope="session")
def s3_backend(minio_client) -> Boto3S3Backend:
    return Boto3S3Backend(client=minio_client)


@pytest.fixture
def run_prefix() -> str:
    return f"_integration/{uuid.uuid4().hex}"


@pytest.fixture
def s3_delete_prefix(minio_client) -> Callable[[str, str], None]:
    """Delete all objects under a prefix."""

    def delete_prefix(bucket: str, prefix: str) -> None:
        paginator = minio_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            contents = page.get("Contents", [])
            if not contents:
                continue
            minio_client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": obj["Key"]} for obj in contents]},
            )

    return delete_prefix


@pytest.fixture(autouse=True)
def _cleanup(run_prefix: str, test_bucket_name: str, s3_delete_prefix) -> Generator[None, None, None]:
    yield
    s3_delete_prefix(test_bucket_name, run_prefix)
