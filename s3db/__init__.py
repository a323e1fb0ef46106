"""Stable public imports for `s3db`.

Application code normally needs ``S3DB`` (or ``PathKeyStore``), a backend and the
error types. Key helpers live in ``s3db.io``; test doubles in ``s3db.testing``.
"""

from s3db.compat import S3DB
from s3db.db import PathKeyStore
from s3db.errors import (
    BackendError,
    NotFoundError,
    ParseError,
    S3DBError,
    SourceNotFoundError,
    ValidationError,
)
from s3db.io.keys import ensure_json_extension, join_path
from s3db.settings import S3Settings, open_namespace_stores, open_store, resolve_s3_settings
from s3db.storage import ListPage, ObjectBackend
from s3db.stores import Boto3S3Backend, LocalFileBackend

__all__ = [
    "BackendError",
    "Boto3S3Backend",
    "ListPage",
    "LocalFileBackend",
    "NotFoundError",
    "ObjectBackend",
    "ParseError",
    "PathKeyStore",
    "S3DB",
    "S3DBError",
    "S3Settings",
    "SourceNotFoundError",
    "ValidationError",
    "ensure_json_extension",
    "join_path",
    "open_namespace_stores",
    "open_store",
    "resolve_s3_settings",
]
