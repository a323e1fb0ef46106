from __future__ import annotations

SEPARATOR = "/"
JSON_EXTENSION = ".json"


def join_path(*parts: str) -> str:
    """Join key segments with a single ``/``.

    Empty parts and redundant separators are dropped, so
    ``join_path("a/", "/b")`` and ``join_path("a", "b/")`` both give ``"a/b"``.
    The result never starts or ends with a separator.
    """

    segments: list[str] = []
    for part in parts:
        segments.extend(s for s in str(part).split(SEPARATOR) if s)
    return SEPARATOR.join(segments)


def ensure_json_extension(key: object) -> str:
    text = key if isinstance(key, str) else str(key)
    if text.endswith(JSON_EXTENSION):
        return text
    return text + JSON_EXTENSION


def strip_json_extension(key: str) -> str:
    if key.endswith(JSON_EXTENSION):
        return key[: -len(JSON_EXTENSION)]
    return key


def directory_prefix(path: str) -> str:
    """Return the listing boundary for ``path``.

    - ``""`` stays ``""`` (bucket root).
    - Anything else is normalized and gets exactly one trailing ``/`` so that
      ``a/b`` never matches ``a/bc/...``.
    """

    normalized = join_path(path)
    if not normalized:
        return ""
    return normalized + SEPARATOR


def relative_key(full_key: str, list_prefix: str, *, strip_extension: bool) -> str | None:
    """Strip ``list_prefix`` from ``full_key``.

    Returns ``None`` when the key is outside the prefix or is the prefix itself
    (directory marker objects).
    """

    if not full_key.startswith(list_prefix) or len(full_key) <= len(list_prefix):
        return None
    rel = full_key[len(list_prefix) :]
    if strip_extension:
        rel = strip_json_extension(rel)
    return rel
