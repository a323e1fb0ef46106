from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class ListPage:
    """One page of a prefix listing."""

    keys: list[str] = field(default_factory=list)
    is_truncated: bool = False
    next_token: str | None = None


class ObjectBackend(Protocol):
    """Primitive object-storage operations consumed by ``PathKeyStore``.

    Keys are always fully-qualified object keys (no ``s3://`` scheme, no bucket).
    Implementations translate their own failures into ``s3db.errors``:
    ``NotFoundError`` for an absent object and ``BackendError`` for everything else.
    """

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        kms_key_id: str | None = None,
    ) -> None:
        """Write ``data`` to ``key`` (overwrite). Request SSE-KMS when ``kms_key_id`` is set."""

    def get_object(self, bucket: str, key: str) -> bytes:
        """Read the full object body. Raise ``NotFoundError`` when absent."""

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete ``key``. Deleting an absent key succeeds."""

    def head_object(self, bucket: str, key: str) -> bool:
        """Return True when the object exists, False when it does not."""

    def list_objects_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        """Return one page of keys starting with ``prefix`` (raw string-prefix match)."""

    def copy_object(self, bucket: str, source_key: str, dest_key: str) -> None:
        """Server-side copy within ``bucket``."""
