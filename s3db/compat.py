"""Deprecated method names kept for callers of the older blob API."""

from __future__ import annotations

import logging
import warnings

from s3db.db import PathKeyStore
from s3db.observability import log_event

logger = logging.getLogger(__name__)


def _deprecated(old: str, new: str) -> None:
    log_event(logger, "s3db.deprecated", method=old, replacement=new)
    warnings.warn(f"{old} is deprecated, use {new} instead", DeprecationWarning, stacklevel=3)


class S3DB(PathKeyStore):
    """``PathKeyStore`` plus the ``*_blob`` aliases."""

    __slots__ = ()

    def put_blob(self, key: str, data: bytes) -> None:
        _deprecated("put_blob", "put_raw")
        self.put_raw(key, data)

    def get_blob(self, key: str, *, not_found_returns_none: bool = False) -> bytes | None:
        _deprecated("get_blob", "get_raw")
        return self.get_raw(key, not_found_returns_none=not_found_returns_none)

    def delete_blob(self, key: str) -> None:
        _deprecated("delete_blob", "delete_raw")
        self.delete_raw(key)

    def exists_blob(self, key: str) -> bool:
        _deprecated("exists_blob", "exists_raw")
        return self.exists_raw(key)
