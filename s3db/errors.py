from __future__ import annotations


class S3DBError(Exception):
    """Base error for s3db."""


class ValidationError(S3DBError):
    """Raised when constructor or method arguments are malformed."""


class NotFoundError(S3DBError):
    """Raised when the requested object does not exist."""

    def __init__(self, bucket: str, key: str, message: str | None = None) -> None:
        self.bucket = bucket
        self.key = key
        super().__init__(message or f"Object not found: s3://{bucket}/{key}")


class SourceNotFoundError(NotFoundError):
    """Raised by copy/move when the source object is absent."""


class ParseError(S3DBError):
    """Raised when stored bytes cannot be decoded (invalid JSON or text encoding)."""

    def __init__(self, key: str, message: str, *, what: str = "JSON data") -> None:
        self.key = key
        super().__init__(f"Failed to parse {what} for key {key}: {message}")


class BackendError(S3DBError):
    """Raised for any backend failure not classified above."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)
