"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Empty API keys disable the matching outbound client (geocoding / email become no-ops)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://uemp:uemp@db:5432/uemp"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Document store transactions
    transaction_max_attempts: int = 5
    transaction_base_delay_ms: int = 20
    transaction_max_delay_ms: int = 1000

    # Matching
    matching_max_distance_km: float = 500.0

    # QR codes
    qr_base_url: str = "https://unified-e-waste-management-platform.vercel.app/product"

    # Geocoding (Google Geocoding API)
    google_maps_api_key: str = ""
    geocoding_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    geocoding_timeout_seconds: float = 10.0

    # Notifications (SendGrid)
    sendgrid_api_key: str = ""
    sendgrid_url: str = "https://api.sendgrid.com/v3/mail/send"
    notification_sender: str = "noreply@uemp.example"
    notification_timeout_seconds: float = 10.0

    # Caller identity, set by the upstream auth gateway
    auth_user_header: str = "X-User-Id"

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
