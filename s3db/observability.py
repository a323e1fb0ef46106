from __future__ import annotations

import logging
from collections.abc import Mapping


def _kv_pairs(fields: Mapping[str, object]) -> str:
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger, message: str, *, level: int = logging.DEBUG, **fields: object
) -> None:
    """Emit a structured log line.

    Key fields are appended as ``k=v`` tokens so plain-text log sinks stay greppable.
    Routine store operations use DEBUG; callers pass ``level`` for failures.
    """

    suffix = _kv_pairs(fields)
    if suffix:
        logger.log(level, "%s %s", message, suffix)
    else:
        logger.log(level, "%s", message)


def object_uri(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"
