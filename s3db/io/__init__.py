"""Key and path helpers shared by the store and its backends."""

from s3db.io.keys import (
    JSON_EXTENSION,
    SEPARATOR,
    directory_prefix,
    ensure_json_extension,
    join_path,
    relative_key,
    strip_json_extension,
)

__all__ = [
    "JSON_EXTENSION",
    "SEPARATOR",
    "directory_prefix",
    "ensure_json_extension",
    "join_path",
    "relative_key",
    "strip_json_extension",
]
