from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from s3db.errors import (
    BackendError,
    NotFoundError,
    ParseError,
    S3DBError,
    SourceNotFoundError,
    ValidationError,
)
from s3db.io.keys import directory_prefix, ensure_json_extension, join_path, relative_key
from s3db.observability import log_event, object_uri
from s3db.storage import ObjectBackend

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _require_text(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {name}: {value!r}. {name} must be a string.")
    return value


def encode_document(value: Any, *, pretty: bool = False) -> bytes:
    try:
        if pretty:
            text = json.dumps(value, indent=2, ensure_ascii=False)
        else:
            text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Value is not JSON serializable: {exc}") from exc
    return text.encode("utf-8")


def decode_document(key: str, body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(key, str(exc)) from exc


class PathKeyStore:
    """Key-value document store over one bucket prefix.

    Document keys get a ``.json`` suffix; raw keys are used verbatim. Every
    object key sent to the backend is ``join_path(prefix, key)``.

    The store holds no mutable state, so one instance can be shared across
    threads. ``update`` and ``move`` are two backend round trips and are not atomic.
    """

    __slots__ = ("_backend", "_bucket", "_prefix", "_kms_key_id")

    def __init__(
        self,
        backend: ObjectBackend,
        bucket: str,
        prefix: str = "",
        kms_key_id: str | None = None,
    ) -> None:
        bucket = _require_text("bucket", bucket)
        if not bucket.strip():
            raise ValidationError("bucket is required")
        prefix = _require_text("prefix", prefix)
        if kms_key_id is not None:
            kms_key_id = _require_text("kms_key_id", kms_key_id)

        self._backend = backend
        self._bucket = bucket.strip()
        self._prefix = prefix
        self._kms_key_id = kms_key_id or None

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def kms_key_id(self) -> str | None:
        return self._kms_key_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(bucket={self._bucket!r}, prefix={self._prefix!r})"

    # -- key resolution --------------------------------------------------

    def _raw_path(self, key: str) -> str:
        key = _require_text("key", key)
        path = join_path(self._prefix, key)
        if path == join_path(self._prefix):
            raise ValidationError(f"Key must not be empty: {key!r}")
        return path

    def _document_path(self, key: object) -> str:
        if not join_path(str(key)):
            raise ValidationError(f"Key must not be empty: {key!r}")
        return self._raw_path(ensure_json_extension(key))

    def _qualified_path(self, name: str, path: str) -> str:
        normalized = join_path(_require_text(name, path))
        if not normalized:
            raise ValidationError(f"{name} must not be empty")
        return normalized

    # -- primitives with logging ------------------------------------------

    def _write(self, path: str, data: bytes, *, content_type: str | None = None) -> None:
        log_event(
            logger,
            "s3db.put",
            uri=object_uri(self._bucket, path),
            bytes=len(data),
            encrypted=bool(self._kms_key_id),
        )
        self._backend.put_object(
            self._bucket,
            path,
            data,
            content_type=content_type,
            kms_key_id=self._kms_key_id,
        )

    def _read(self, path: str, *, not_found_returns_none: bool) -> bytes | None:
        log_event(logger, "s3db.get", uri=object_uri(self._bucket, path))
        try:
            return self._backend.get_object(self._bucket, path)
        except NotFoundError:
            if not_found_returns_none:
                log_event(
                    logger, "s3db.get", uri=object_uri(self._bucket, path), status="not_found"
                )
                return None
            raise

    def _delete(self, path: str) -> None:
        uri = object_uri(self._bucket, path)
        log_event(logger, "s3db.delete", uri=uri)
        try:
            self._backend.delete_object(self._bucket, path)
        except S3DBError as exc:
            log_event(
                logger, "s3db.delete", level=logging.ERROR, uri=uri, status="failed", error=exc
            )
            raise
        log_event(logger, "s3db.delete", uri=uri, status="done")

    # -- documents ---------------------------------------------------------

    def put(self, key: object, value: Any, *, pretty: bool = False) -> None:
        """Serialize ``value`` as JSON and overwrite ``key``."""
        data = encode_document(value, pretty=pretty)
        self._write(self._document_path(key), data, content_type=JSON_CONTENT_TYPE)

    def get(self, key: object, *, not_found_returns_none: bool = False) -> Any:
        """Read and parse the document at ``key``.

        Raises ``NotFoundError`` when absent unless ``not_found_returns_none`` is set,
        and ``ParseError`` when the stored bytes are not JSON.
        """
        path = self._document_path(key)
        body = self._read(path, not_found_returns_none=not_found_returns_none)
        if body is None:
            return None
        return decode_document(path, body)

    def update(
        self,
        key: object,
        partial: Mapping[str, Any],
        *,
        not_found_returns_none: bool = False,
        pretty: bool = False,
    ) -> dict[str, Any]:
        """Shallow-merge ``partial`` over the stored document and write it back.

        Top-level keys of ``partial`` replace existing ones; nested values are not
        merged. A missing document raises ``NotFoundError``, or starts from ``{}``
        when ``not_found_returns_none`` is set. Read and write are separate round
        trips: a concurrent writer in between is overwritten.
        """
        if not isinstance(partial, Mapping):
            raise ValidationError(
                f"Invalid update for key {key}: expected a mapping, got {type(partial).__name__}"
            )

        path = self._document_path(key)
        body = self._read(path, not_found_returns_none=True)
        if body is None:
            if not not_found_returns_none:
                raise NotFoundError(self._bucket, path)
            existing: Any = {}
        else:
            existing = decode_document(path, body)
        if not isinstance(existing, dict):
            raise ValidationError(
                f"Cannot update {object_uri(self._bucket, path)}: stored document is not an object"
            )

        merged = {**existing, **partial}
        self._write(path, encode_document(merged, pretty=pretty), content_type=JSON_CONTENT_TYPE)
        return merged

    def delete(self, key: object) -> None:
        self._delete(self._document_path(key))

    def exists(self, key: object) -> bool:
        return self.exists_fully_qualified(self._document_path(key))

    # -- raw objects -------------------------------------------------------

    def put_raw(self, key: str, data: bytes | bytearray | memoryview | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        elif isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        elif not isinstance(data, bytes):
            raise ValidationError(
                f"Invalid data for key {key}: expected bytes, got {type(data).__name__}"
            )
        self._write(self._raw_path(key), data)

    def get_raw(self, key: str, *, not_found_returns_none: bool = False) -> bytes | None:
        return self._read(self._raw_path(key), not_found_returns_none=not_found_returns_none)

    def get_string(
        self, key: str, *, encoding: str = "utf-8", not_found_returns_none: bool = False
    ) -> str | None:
        path = self._raw_path(key)
        body = self._read(path, not_found_returns_none=not_found_returns_none)
        if body is None:
            return None
        try:
            return body.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise ParseError(path, str(exc), what=f"{encoding} text") from exc

    def delete_raw(self, key: str) -> None:
        self._delete(self._raw_path(key))

    def exists_raw(self, key: str) -> bool:
        return self.exists_fully_qualified(self._raw_path(key))

    def exists_fully_qualified(self, path: str) -> bool:
        """Probe ``path`` (bucket-relative, prefix included). Absent objects give False."""
        path = self._qualified_path("path", path)
        uri = object_uri(self._bucket, path)
        try:
            found = self._backend.head_object(self._bucket, path)
        except S3DBError as exc:
            log_event(
                logger, "s3db.exists", level=logging.ERROR, uri=uri, status="failed", error=exc
            )
            raise
        log_event(logger, "s3db.exists", uri=uri, exists=found)
        return found

    # -- listing -----------------------------------------------------------

    def list(self, sub_path: str = "") -> list[str]:
        """Return document keys under ``prefix/sub_path``, ``.json`` stripped.

        For objects ``p/sub/key1.json`` and ``p/sub/deeper/key2.json`` on a store with
        prefix ``p``, ``list("sub")`` returns ``["key1", "deeper/key2"]``. Order is the
        backend's. Pages are fetched one after another, so the result is not a
        snapshot when other writers are active.
        """
        return self._list(sub_path, strip_extension=True)

    def list_raw(self, sub_path: str = "") -> list[str]:
        """Like ``list`` but keys keep their extension."""
        return self._list(sub_path, strip_extension=False)

    def _list(self, sub_path: str, *, strip_extension: bool) -> list[str]:
        sub_path = _require_text("sub_path", sub_path)
        list_prefix = directory_prefix(join_path(self._prefix, sub_path))
        log_event(logger, "s3db.list", bucket=self._bucket, prefix=list_prefix)

        keys: list[str] = []
        token: str | None = None
        page_number = 0
        while True:
            page_number += 1
            try:
                page = self._backend.list_objects_page(self._bucket, list_prefix, token)
            except S3DBError as exc:
                log_event(
                    logger,
                    "s3db.list",
                    level=logging.ERROR,
                    bucket=self._bucket,
                    prefix=list_prefix,
                    page=page_number,
                    status="failed",
                    error=exc,
                )
                raise

            matched: list[str] = []
            for full_key in page.keys:
                rel = relative_key(full_key, list_prefix, strip_extension=strip_extension)
                if rel is not None:
                    matched.append(rel)
            keys.extend(matched)
            log_event(
                logger,
                "s3db.list.page",
                prefix=list_prefix,
                page=page_number,
                returned=len(page.keys),
                matched=len(matched),
            )

            if not page.is_truncated:
                break
            if not page.next_token:
                raise BackendError(
                    f"Listing {object_uri(self._bucket, list_prefix)} returned a truncated page "
                    "without a continuation token"
                )
            token = page.next_token

        log_event(
            logger,
            "s3db.list",
            prefix=list_prefix,
            status="done",
            total=len(keys),
            pages=page_number,
        )
        return keys

    # -- copy / move -------------------------------------------------------

    def copy(self, key: object, new_key: object) -> None:
        self.copy_fully_qualified(self._document_path(key), self._document_path(new_key))

    def move(self, key: object, new_key: object) -> None:
        self.move_fully_qualified(self._document_path(key), self._document_path(new_key))

    def copy_raw(self, key: str, new_key: str) -> None:
        self.copy_fully_qualified(self._raw_path(key), self._raw_path(new_key))

    def move_raw(self, key: str, new_key: str) -> None:
        self.move_fully_qualified(self._raw_path(key), self._raw_path(new_key))

    def copy_fully_qualified(self, source_path: str, dest_path: str) -> None:
        """Copy between bucket-relative paths. No prefix or extension is applied.

        The source is probed first; a missing source raises ``SourceNotFoundError``
        before anything is written. The probe does not protect against the source
        disappearing before the copy runs.
        """
        source_path = self._qualified_path("source_path", source_path)
        dest_path = self._qualified_path("dest_path", dest_path)

        if not self.exists_fully_qualified(source_path):
            log_event(
                logger,
                "s3db.copy",
                level=logging.ERROR,
                source=source_path,
                dest=dest_path,
                status="source_not_found",
            )
            raise SourceNotFoundError(
                self._bucket,
                source_path,
                f"Error copying object from {source_path} to {dest_path}: "
                "the specified source key does not exist.",
            )

        try:
            self._backend.copy_object(self._bucket, source_path, dest_path)
        except S3DBError as exc:
            log_event(
                logger,
                "s3db.copy",
                level=logging.ERROR,
                source=source_path,
                dest=dest_path,
                status="failed",
                error=exc,
            )
            raise
        log_event(logger, "s3db.copy", source=source_path, dest=dest_path, status="done")

    def move_fully_qualified(self, source_path: str, dest_path: str) -> None:
        """Copy, then delete the source.

        If the delete fails the object exists at both paths; the error propagates
        and the copy is left in place.
        """
        source_path = self._qualified_path("source_path", source_path)
        dest_path = self._qualified_path("dest_path", dest_path)

        self.copy_fully_qualified(source_path, dest_path)
        try:
            self._backend.delete_object(self._bucket, source_path)
        except S3DBError as exc:
            log_event(
                logger,
                "s3db.move",
                level=logging.ERROR,
                source=source_path,
                dest=dest_path,
                status="partial",
                error=exc,
            )
            raise
        log_event(logger, "s3db.move", source=source_path, dest=dest_path, status="done")
