from __future__ import annotations

import pytest

from s3db.db import PathKeyStore
from s3db.testing.memory_backend import RecordingMemoryBackend

BUCKET = "s3dbunittestbucket"


@pytest.fixture
def backend() -> RecordingMemoryBackend:
    return RecordingMemoryBackend()


@pytest.fixture
def store(backend: RecordingMemoryBackend) -> PathKeyStore:
    return PathKeyStore(backend, BUCKET, "users")


@pytest.fixture
def user_data() -> dict[str, str]:
    return {"name": "John Doe", "email": "john.doe@example.com"}
