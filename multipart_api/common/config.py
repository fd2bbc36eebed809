from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_ALLOWED_CONTENT_TYPES: tuple[str, ...] = (
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/zip",
    "text/plain",
    "video/mp4",
    "video/quicktime",
    "audio/mpeg",
)


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    S3_BUCKET: str | None = None
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str | None = None
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_USE_SSL: bool = True
    S3_ADDRESSING_STYLE: str = "auto"
    S3_MAX_ATTEMPTS: int = 3
    UPLOAD_PREFIX: str = "uploads/"
    ALLOWED_CONTENT_TYPES: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_CONTENT_TYPES)
    )
    PRESIGN_EXPIRES_SECONDS: int = 3600
    SESSION_TTL_SECONDS: int = 86400
    SESSION_SWEEP_INTERVAL_SECONDS: int = 300
    CORS_ENABLED: bool = True
    CORS_ORIGINS: list[str] = field(default_factory=list)
    ENABLE_METRICS: bool = True
    API_KEY_ENABLED: bool = False
    API_KEY: str | None = None
    ADMIN_API_KEY: str | None = None
    TRACE_HTTP: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    def __post_init__(self) -> None:
        if self.PRESIGN_EXPIRES_SECONDS <= 0:
            raise ValueError("PRESIGN_EXPIRES_SECONDS must be positive.")
        # SigV4 presigned URLs are capped at seven days.
        if self.PRESIGN_EXPIRES_SECONDS > 604800:
            raise ValueError("PRESIGN_EXPIRES_SECONDS cannot exceed 604800.")
        if self.SESSION_TTL_SECONDS <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be positive.")
        if self.SESSION_SWEEP_INTERVAL_SECONDS < 0:
            raise ValueError("SESSION_SWEEP_INTERVAL_SECONDS cannot be negative.")
        if self.S3_MAX_ATTEMPTS < 1:
            raise ValueError("S3_MAX_ATTEMPTS must be at least 1.")

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        allowed_env = os.environ.get("ALLOWED_CONTENT_TYPES")
        if allowed_env is None:
            allowed_content_types = list(DEFAULT_ALLOWED_CONTENT_TYPES)
        else:
            allowed_content_types = [item.lower() for item in _as_list(allowed_env)]

        return cls(
            S3_BUCKET=os.environ.get("S3_BUCKET"),
            S3_REGION=os.environ.get("S3_REGION", cls.S3_REGION),
            S3_ENDPOINT_URL=os.environ.get("S3_ENDPOINT_URL") or None,
            S3_ACCESS_KEY_ID=os.environ.get("S3_ACCESS_KEY_ID"),
            S3_SECRET_ACCESS_KEY=os.environ.get("S3_SECRET_ACCESS_KEY"),
            S3_USE_SSL=_as_bool(os.environ.get("S3_USE_SSL"), cls.S3_USE_SSL),
            S3_ADDRESSING_STYLE=os.environ.get(
                "S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE
            ),
            S3_MAX_ATTEMPTS=int(
                os.environ.get("S3_MAX_ATTEMPTS", cls.S3_MAX_ATTEMPTS)
            ),
            UPLOAD_PREFIX=os.environ.get("UPLOAD_PREFIX", cls.UPLOAD_PREFIX),
            ALLOWED_CONTENT_TYPES=allowed_content_types,
            PRESIGN_EXPIRES_SECONDS=int(
                os.environ.get("PRESIGN_EXPIRES_SECONDS", cls.PRESIGN_EXPIRES_SECONDS)
            ),
            SESSION_TTL_SECONDS=int(
                os.environ.get("SESSION_TTL_SECONDS", cls.SESSION_TTL_SECONDS)
            ),
            SESSION_SWEEP_INTERVAL_SECONDS=int(
                os.environ.get(
                    "SESSION_SWEEP_INTERVAL_SECONDS",
                    cls.SESSION_SWEEP_INTERVAL_SECONDS,
                )
            ),
            CORS_ENABLED=_as_bool(os.environ.get("CORS_ENABLED"), cls.CORS_ENABLED),
            CORS_ORIGINS=_as_list(os.environ.get("CORS_ORIGINS")),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            API_KEY_ENABLED=_as_bool(
                os.environ.get("API_KEY_ENABLED"), cls.API_KEY_ENABLED
            ),
            API_KEY=os.environ.get("API_KEY"),
            ADMIN_API_KEY=os.environ.get("ADMIN_API_KEY"),
            TRACE_HTTP=_as_bool(os.environ.get("TRACE_HTTP"), cls.TRACE_HTTP),
            HOST=os.environ.get("HOST", cls.HOST),
            PORT=int(os.environ.get("PORT", cls.PORT)),
        )

    def is_content_type_allowed(self, content_type: str) -> bool:
        """Match against the allow-list; entries like ``image/*`` match a whole family."""
        normalized = content_type.strip().lower()
        for allowed in self.ALLOWED_CONTENT_TYPES:
            if allowed == normalized:
                return True
            if allowed.endswith("/*") and normalized.startswith(allowed[:-1]):
                return True
        return False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
