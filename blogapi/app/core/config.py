import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON is the documented format; plain comma/space separated lists are
    # accepted too so a hand-edited .env does not stop the server.
    if raw.startswith(("[", '"', "'")):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw or raw == "[]":
                return []
            if raw == "*":
                return ["*"]

    parts = [p for p in re.split(r"[,\s]+", raw) if p]
    origins: list[str] = []
    for part in parts:
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
            continue
        # Browsers send the scheme in the Origin header, so a bare host
        # allows both.
        origins.append(f"http://{part}")
        origins.append(f"https://{part}")

    seen: set[str] = set()
    result: list[str] = []
    for origin in origins:
        if origin in seen:
            continue
        seen.add(origin)
        result.append(origin)
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    Values are read once at startup; nothing here is reloadable at runtime.
    """

    app_name: str = "Blog API"

    # Debug mode - enables the /docs UI and verbose logging
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Database (user profiles and like/bookmark relations)
    database_url: str = "sqlite+aiosqlite:///./blogapi.db"
    db_pool_size: int = 10
    db_max_overflow: int = 5
    db_pool_recycle: int = 300

    # Firebase identity provider
    firebase_project_id: str = ""
    firebase_credentials_file: str = "./firebase-credentials.json"

    # Rate limiting (fixed window)
    rate_limit_requests: int = 100
    rate_limit_window_seconds: float = 60.0
    rate_limit_sweep_interval_seconds: float = 300.0
    rate_limit_fail_closed: bool = (
        False  # If True, deny requests when Redis is unavailable
    )

    # Redis settings (optional, shared rate limit state across instances)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | context

    # CORS settings
    # NoDecode keeps pydantic from JSON-decoding the raw env value before the
    # tolerant parser below sees it.
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("rate_limit_requests")
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate the per-window request limit is positive."""
        if v < 1:
            raise ValueError("rate_limit_requests must be at least 1")
        return v

    @field_validator("rate_limit_window_seconds", "rate_limit_sweep_interval_seconds")
    @classmethod
    def validate_durations_positive(cls, v: float) -> float:
        """Validate window and sweep interval are positive."""
        if v <= 0:
            raise ValueError("Rate limit durations must be positive")
        return v

    @field_validator("db_pool_size", "db_max_overflow")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pool size values must be at least 1")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "context"):
            raise ValueError("log_format must be 'text' or 'context'")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings() -> Settings:
    """Load settings from the environment.

    Called once by the application factory; components receive the
    resulting object instead of importing a module-level instance.
    """
    return Settings()
