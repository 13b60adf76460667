from pathlib import Path
from typing import Literal

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

API_VERSION_PATH = "/api/v1"


class Settings(BaseSettings):
    # n8n
    N8N_API_URL: str
    N8N_API_KEY: str = Field(min_length=1)

    # Server
    LOG_LEVEL: Literal["debug", "info", "warn", "error"] = "info"
    APP_ENV: Literal["development", "production", "test"] = "development"
    MCP_MODE: str = ""
    LOG_DIR: Path = Path.home() / ".n8n-manager" / "logs"

    # Requests
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    MAX_RETRIES: int = Field(default=3, ge=0)
    MAX_CONCURRENT_REQUESTS: int = Field(default=10, gt=0)
    UPDATE_METHODS: str = "PUT,PATCH"
    METHOD_FALLBACK_STATUSES: str = "405"

    # Rate limiting
    RATE_LIMIT_MAX: int = Field(default=60, gt=0)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=60.0, gt=0)

    # Cache
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = Field(default=300, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("N8N_API_URL")
    @classmethod
    def _check_api_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid URL: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("must be an http(s) URL with a host")
        return value

    @field_validator("UPDATE_METHODS")
    @classmethod
    def _check_update_methods(cls, value: str) -> str:
        methods = [m.strip().upper() for m in value.split(",") if m.strip()]
        if len(methods) != 2 or len(set(methods)) != 2:
            raise ValueError("expected two distinct HTTP methods, e.g. 'PUT,PATCH'")
        return ",".join(methods)

    @field_validator("METHOD_FALLBACK_STATUSES")
    @classmethod
    def _check_fallback_statuses(cls, value: str) -> str:
        codes = [c.strip() for c in value.split(",") if c.strip()]
        if not codes or not all(c.isdigit() and 400 <= int(c) <= 599 for c in codes):
            raise ValueError("expected comma-separated 4xx/5xx status codes")
        return ",".join(codes)

    @property
    def api_base_url(self) -> str:
        """Base URL of the n8n public API, always ending in the version segment."""
        base = self.N8N_API_URL.rstrip("/")
        if base.endswith(API_VERSION_PATH):
            return base
        return f"{base}{API_VERSION_PATH}"

    @property
    def update_methods(self) -> tuple[str, str]:
        primary, secondary = self.UPDATE_METHODS.split(",")
        return primary, secondary

    @property
    def method_fallback_statuses(self) -> frozenset[int]:
        return frozenset(int(code) for code in self.METHOD_FALLBACK_STATUSES.split(","))

    def snapshot(self) -> dict[str, object]:
        """Non-secret settings for diagnostics output."""
        return {
            "log_level": self.LOG_LEVEL,
            "environment": self.APP_ENV,
            "request_timeout_seconds": self.REQUEST_TIMEOUT_SECONDS,
            "max_retries": self.MAX_RETRIES,
            "rate_limit": f"{self.RATE_LIMIT_MAX} requests per {self.RATE_LIMIT_WINDOW_SECONDS:g}s",
            "cache": f"{self.CACHE_TTL_SECONDS}s TTL" if self.CACHE_ENABLED else "disabled",
            "max_concurrent_requests": self.MAX_CONCURRENT_REQUESTS,
        }


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment, with optional explicit overrides."""
    return Settings(**overrides)
