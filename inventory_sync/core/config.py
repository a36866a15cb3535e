"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Limits that protect backend invariants (batch cap,
page sizes) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventory_sync.core.constants import (
    BACKEND_MAX_BATCH_WRITES,
    DEFAULT_DELETE_BATCH_CAP,
    DEFAULT_DELETE_PAGE_SIZE,
    DEFAULT_PREFETCH_THRESHOLD,
    DEFAULT_VIEW_PAGE_SIZE,
    MAX_PAGE_SIZE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Every field has a default so the engines can be constructed without
    any environment (tests, scripts against an injected store). Firestore
    credentials are only required by init_firebase().
    """

    # App
    app_name: str = "inventory-sync"
    app_version: str = "1.0.0"
    debug: bool = False

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None  # Path to JSON file
    firestore_http_timeout_seconds: float = 30.0

    # Materialized views
    view_page_size: int = DEFAULT_VIEW_PAGE_SIZE
    view_prefetch_threshold: int = DEFAULT_PREFETCH_THRESHOLD
    # REST has no push channel; per-document subscriptions poll at this interval.
    subscription_poll_interval_seconds: float = 2.0

    # Cascading deletion
    delete_batch_cap: int = DEFAULT_DELETE_BATCH_CAP
    delete_page_size: int = DEFAULT_DELETE_PAGE_SIZE

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Validate page sizes, batch cap and polling interval.

        - delete_batch_cap must stay strictly below the backend commit limit
          and hold at least one child delete plus its index delete.
        - Page sizes must be within 1..MAX_PAGE_SIZE.
        """
        if not 2 <= self.delete_batch_cap < BACKEND_MAX_BATCH_WRITES:
            raise ValueError(
                f"DELETE_BATCH_CAP must be between 2 and {BACKEND_MAX_BATCH_WRITES - 1}, "
                f"got: {self.delete_batch_cap}"
            )
        if not 1 <= self.view_page_size <= MAX_PAGE_SIZE:
            raise ValueError(
                f"VIEW_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}, got: {self.view_page_size}"
            )
        if not 1 <= self.delete_page_size <= MAX_PAGE_SIZE:
            raise ValueError(
                f"DELETE_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}, got: {self.delete_page_size}"
            )
        if self.view_prefetch_threshold < 0:
            raise ValueError("VIEW_PREFETCH_THRESHOLD must not be negative")
        if self.subscription_poll_interval_seconds <= 0:
            raise ValueError("SUBSCRIPTION_POLL_INTERVAL_SECONDS must be positive")
        if self.telemetry_exporter not in ("console", "otlp", "none"):
            raise ValueError(
                f"telemetry_exporter must be 'console', 'otlp' or 'none', got: {self.telemetry_exporter!r}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
