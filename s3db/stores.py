from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from s3db.errors import BackendError, NotFoundError
from s3db.observability import log_event, object_uri
from s3db.storage import ListPage, ObjectBackend

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
DEFAULT_PAGE_SIZE = 1000


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None) or {}
    error = response.get("Error") or {}
    return str(error.get("Code") or "")


def _is_not_found(exc: Exception) -> bool:
    return _error_code(exc) in _NOT_FOUND_CODES


def _backend_error(exc: Exception, action: str, bucket: str, key: str) -> BackendError:
    code = _error_code(exc) or None
    return BackendError(f"Failed to {action} {object_uri(bucket, key)}: {exc}", code=code)


@dataclass
class LocalFileBackend(ObjectBackend):
    """A local filesystem backend: each object is a file at ``root_dir / bucket / key``.

    Listing is sorted by key and paginated with ``page_size``; the continuation
    token is the last key of the previous page. Encryption parameters are accepted
    and ignored.
    """

    root_dir: Path
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        if self.page_size < 1:
            raise ValueError("page_size must be positive")

    def _bucket_root(self, bucket: str) -> Path:
        return self.root_dir / bucket

    def _to_path(self, bucket: str, key: str) -> Path:
        if not key or key.endswith("/"):
            raise BackendError(f"Directory-style keys are not supported: {object_uri(bucket, key)}")
        bucket_root = self._bucket_root(bucket).resolve()
        path = (bucket_root / key).resolve()
        try:
            bucket_root.relative_to(self.root_dir)
            path.relative_to(bucket_root)
        except ValueError as exc:
            raise BackendError(f"Key escapes its bucket directory: {object_uri(bucket, key)}") from exc
        return path

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        kms_key_id: str | None = None,
    ) -> None:
        path = self._to_path(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise _backend_error(exc, "write", bucket, key) from exc

    def get_object(self, bucket: str, key: str) -> bytes:
        path = self._to_path(bucket, key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise NotFoundError(bucket, key) from exc
        except OSError as exc:
            raise _backend_error(exc, "read", bucket, key) from exc

    def delete_object(self, bucket: str, key: str) -> None:
        path = self._to_path(bucket, key)
        if path.is_dir():
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise _backend_error(exc, "delete", bucket, key) from exc

    def head_object(self, bucket: str, key: str) -> bool:
        return self._to_path(bucket, key).is_file()

    def list_objects_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        bucket_root = self._bucket_root(bucket)
        if not bucket_root.exists():
            return ListPage()

        keys: list[str] = []
        for file_path in bucket_root.rglob("*"):
            if not file_path.is_file():
                continue
            rel = file_path.relative_to(bucket_root).as_posix()
            if rel.startswith(prefix) and (continuation_token is None or rel > continuation_token):
                keys.append(rel)
        keys.sort()

        page = keys[: self.page_size]
        if len(keys) > self.page_size:
            return ListPage(keys=page, is_truncated=True, next_token=page[-1])
        return ListPage(keys=page)

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        data = self.get_object(bucket, source_key)
        self.put_object(bucket, dest_key, data)


class Boto3S3Backend(ObjectBackend):
    """S3/MinIO backend using a boto3 client.

    Pass ``client`` to reuse an existing client (or a test double); otherwise one is
    built from the connection arguments. Retry/backoff and timeouts belong to the
    client's ``botocore`` config.
    """

    def __init__(
        self,
        *,
        client: Any | None = None,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        use_ssl: bool | None = None,
        url_style: str = "path",
        session_token: str | None = None,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        max_attempts: int | None = None,
        client_kwargs: dict[str, Any] | None = None,
    ) -> None:
        if client is not None:
            self._client = client
            return

        try:
            import boto3
            from botocore.config import Config
        except Exception as exc:  # noqa: BLE001
            raise RuntimeError("boto3 is required for Boto3S3Backend") from exc

        if use_ssl is None:
            use_ssl = not endpoint_url or endpoint_url.startswith("https://")

        config_kwargs: dict[str, Any] = {"s3": {"addressing_style": url_style}}
        if connect_timeout is not None:
            config_kwargs["connect_timeout"] = connect_timeout
        if read_timeout is not None:
            config_kwargs["read_timeout"] = read_timeout
        if max_attempts is not None:
            config_kwargs["retries"] = {"max_attempts": max_attempts, "mode": "standard"}

        kwargs: dict[str, Any] = dict(client_kwargs or {})
        kwargs.update(
            dict(
                service_name="s3",
                endpoint_url=endpoint_url,
                region_name=region,
                use_ssl=use_ssl,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                aws_session_token=session_token,
                config=Config(**config_kwargs),
            )
        )
        self._client = boto3.client(**kwargs)

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        kms_key_id: str | None = None,
    ) -> None:
        extra_args: dict[str, str] = {}
        if content_type:
            extra_args["ContentType"] = content_type
        if kms_key_id:
            extra_args["ServerSideEncryption"] = "aws:kms"
            extra_args["SSEKMSKeyId"] = kms_key_id

        # Managed transfer: switches to multipart upload for large bodies.
        try:
            self._client.upload_fileobj(io.BytesIO(data), bucket, key, ExtraArgs=extra_args or None)
        except (BotoCoreError, ClientError) as exc:
            raise _backend_error(exc, "upload", bucket, key) from exc

    def get_object(self, bucket: str, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _is_not_found(exc):
                raise NotFoundError(bucket, key) from exc
            raise _backend_error(exc, "read", bucket, key) from exc
        except BotoCoreError as exc:
            raise _backend_error(exc, "read", bucket, key) from exc

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                log_event(logger, "s3db.backend.delete_absent", uri=object_uri(bucket, key))
                return
            raise _backend_error(exc, "delete", bucket, key) from exc
        except BotoCoreError as exc:
            raise _backend_error(exc, "delete", bucket, key) from exc

    def head_object(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise _backend_error(exc, "head", bucket, key) from exc
        except BotoCoreError as exc:
            raise _backend_error(exc, "head", bucket, key) from exc

    def list_objects_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            response = self._client.list_objects_v2(**params)
        except (BotoCoreError, ClientError) as exc:
            raise _backend_error(exc, "list", bucket, prefix) from exc

        keys = [obj["Key"] for obj in response.get("Contents", []) or [] if obj.get("Key")]
        return ListPage(
            keys=keys,
            is_truncated=bool(response.get("IsTruncated")),
            next_token=response.get("NextContinuationToken"),
        )

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        try:
            self._client.copy_object(
                Bucket=bucket,
                Key=dest_key,
                CopySource={"Bucket": bucket, "Key": source_key},
            )
        except ClientError as exc:
            if _is_not_found(exc):
                raise NotFoundError(bucket, source_key) from exc
            raise _backend_error(exc, "copy", bucket, source_key) from exc
        except BotoCoreError as exc:
            raise _backend_error(exc, "copy", bucket, source_key) from exc
