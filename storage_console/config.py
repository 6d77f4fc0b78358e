"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via:
    1. Environment variables (e.g., TOKEN_SECRET=...)
    2. .env file in the project root

    Region endpoints default to the public Outscale object storage endpoints
    and can be pointed elsewhere (MinIO, a local gateway) per region.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API settings
    api_title: str = "Storage Console API"
    api_version: str = "0.1.0"
    debug: bool = True  # Default to True for development

    # Server settings
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:5173"]

    # Token signing and secret encryption
    token_secret: str | None = None  # HMAC key for tokens (auto-generated if not set)
    session_encryption_key: str | None = None  # Fernet key (auto-generated if not set)
    session_token_expires_seconds: int = 8 * 3600
    refresh_token_expires_seconds: int = 24 * 3600

    # Session records
    session_ttl_seconds: int = 8 * 3600
    session_cleanup_interval_seconds: int = 300

    # Regions
    default_region: str = "eu-west-2"
    s3_endpoint_eu_west_2: str = "https://oos.eu-west-2.outscale.com"
    s3_endpoint_us_east_2: str = "https://oos.us-east-2.outscale.com"
    s3_endpoint_us_west_1: str = "https://oos.us-west-1.outscale.com"
    s3_endpoint_cloudgouv_eu_west_1: str = "https://oos.cloudgouv-eu-west-1.outscale.com"
    s3_endpoint_ap_northeast_1: str = "https://oos.ap-northeast-1.outscale.com"

    # Storage calls
    storage_request_timeout_seconds: int = 30
    bucket_stats_timeout_seconds: float = 12.0
    bucket_stats_delay_seconds: float = 0.1
    list_page_size: int = 1000
    download_url_expires_seconds: int = 3600
    max_upload_bytes: int = 100 * 1024 * 1024  # 100MB

    # Graceful shutdown
    shutdown_poll_interval_seconds: float = 5.0
    shutdown_drain_timeout_seconds: float = 120.0


# Global settings instance
settings = Settings()
