from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from s3db.compat import S3DB
from s3db.errors import ValidationError
from s3db.storage import ObjectBackend
from s3db.stores import Boto3S3Backend


@dataclass(frozen=True)
class S3Settings:
    bucket: str | None
    prefix: str
    kms_key_id: str | None
    endpoint_url: str | None
    access_key: str | None
    secret_key: str | None
    region: str
    url_style: str
    use_ssl: bool | None
    session_token: str | None = None
    connect_timeout: float | None = None
    read_timeout: float | None = None
    max_attempts: int | None = None


@dataclass(frozen=True)
class NamespaceConfig:
    """One logical namespace: a bucket prefix with its own optional KMS key."""

    name: str
    bucket: str
    prefix: str = ""
    kms_key_id: str | None = None


def env_default(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_number(name: str, cast: type) -> Any:
    raw = env_default(name)
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from exc


def resolve_s3_settings() -> S3Settings:
    """Read store and connection settings from the environment.

    ``S3DB_*`` variables configure the store; ``S3_*``/``AWS_*`` variables
    configure the client. Unset credentials fall through to boto3's default chain.
    """

    use_ssl_env = env_default("S3_USE_SSL")
    use_ssl: bool | None = None
    if use_ssl_env is not None:
        use_ssl = use_ssl_env.lower() in {"1", "true", "yes"}

    return S3Settings(
        bucket=env_default("S3DB_BUCKET") or env_default("S3_BUCKET_NAME"),
        prefix=env_default("S3DB_PREFIX", "") or "",
        kms_key_id=env_default("S3DB_KMS_KEY_ID"),
        endpoint_url=env_default("S3_ENDPOINT_URL"),
        access_key=env_default("S3_ACCESS_KEY_ID") or env_default("AWS_ACCESS_KEY_ID"),
        secret_key=env_default("S3_SECRET_ACCESS_KEY") or env_default("AWS_SECRET_ACCESS_KEY"),
        region=env_default("S3_REGION", "us-east-1") or "us-east-1",
        url_style=env_default("S3_URL_STYLE", "path") or "path",
        use_ssl=use_ssl,
        session_token=env_default("AWS_SESSION_TOKEN"),
        connect_timeout=_env_number("S3DB_CONNECT_TIMEOUT", float),
        read_timeout=_env_number("S3DB_READ_TIMEOUT", float),
        max_attempts=_env_number("S3DB_MAX_ATTEMPTS", int),
    )


def _optional_text(name: str, field: str, raw: Mapping[str, Any]) -> str | None:
    value = raw.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"namespace {name!r}: {field} must be a string")
    return value


def parse_namespaces(data: Any, *, default_bucket: str | None = None) -> dict[str, NamespaceConfig]:
    if not isinstance(data, Mapping) or not isinstance(data.get("namespaces"), Mapping):
        raise ValidationError("namespace config must contain a 'namespaces' mapping")

    configs: dict[str, NamespaceConfig] = {}
    for name, raw in data["namespaces"].items():
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValidationError(f"namespace {name!r} must be a mapping")
        bucket = _optional_text(name, "bucket", raw) or default_bucket
        if not bucket:
            raise ValidationError(f"namespace {name!r} has no bucket")
        configs[str(name)] = NamespaceConfig(
            name=str(name),
            bucket=bucket,
            prefix=_optional_text(name, "prefix", raw) or "",
            kms_key_id=_optional_text(name, "kms_key_id", raw),
        )
    return configs


def load_namespaces(
    path: str | Path, *, default_bucket: str | None = None
) -> dict[str, NamespaceConfig]:
    """Load namespaces from a YAML file.

    Example::

        namespaces:
          users:
            bucket: app-data
            prefix: users
          secrets:
            bucket: app-data
            prefix: secrets/
            kms_key_id: alias/app-secrets
    """

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return parse_namespaces(data, default_bucket=default_bucket)


def build_backend(settings: S3Settings) -> Boto3S3Backend:
    return Boto3S3Backend(
        endpoint_url=settings.endpoint_url,
        access_key=settings.access_key,
        secret_key=settings.secret_key,
        region=settings.region,
        use_ssl=settings.use_ssl,
        url_style=settings.url_style,
        session_token=settings.session_token,
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        max_attempts=settings.max_attempts,
    )


def open_store(settings: S3Settings | None = None, backend: ObjectBackend | None = None) -> S3DB:
    settings = settings or resolve_s3_settings()
    if not settings.bucket:
        raise ValidationError("bucket is required (set S3DB_BUCKET or S3_BUCKET_NAME)")
    return S3DB(
        backend if backend is not None else build_backend(settings),
        settings.bucket,
        settings.prefix,
        settings.kms_key_id,
    )


def open_namespace_stores(
    path: str | Path,
    settings: S3Settings | None = None,
    backend: ObjectBackend | None = None,
) -> dict[str, S3DB]:
    """Open one store per namespace in ``path``, all sharing a single backend."""

    settings = settings or resolve_s3_settings()
    namespaces = load_namespaces(path, default_bucket=settings.bucket)
    shared = backend if backend is not None else build_backend(settings)
    return {
        name: open_store(
            replace(settings, bucket=ns.bucket, prefix=ns.prefix, kms_key_id=ns.kms_key_id),
            backend=shared,
        )
        for name, ns in namespaces.items()
    }
