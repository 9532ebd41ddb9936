"""Configuration management for the Lead Intake service."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "lead-intake"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # GCP Configuration
    GCP_PROJECT_ID: str = ""

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    GCS_BUCKET_NAME: str = ""
    UPLOAD_PREFIX: str = "leads"
    LOCAL_STORAGE_PATH: str = "data/leads"
    STORAGE_QUOTA_MB: int = 0  # 0 = unlimited
    SIGNED_LINK_EXPIRATION_HOURS: int = 168  # V4 signed URLs max out at 7 days

    # Request Constraints
    MAX_REQUEST_MB: int = 20
    MAX_UPLOAD_MB: int = 15
    UPLOAD_TIMEOUT_SECONDS: float = 60.0
    RATE_LIMIT: str = "5/minute"

    # Notification (Postmark)
    POSTMARK_API_URL: str = "https://api.postmarkapp.com"
    POSTMARK_SERVER_TOKEN: str = ""
    POSTMARK_TEMPLATE_ID: int = 0
    POSTMARK_FROM: str = "hey@skulpture.xyz"
    NOTIFY_TIMEOUT: int = 10  # seconds for Postmark calls

    @property
    def storage_quota_bytes(self) -> int | None:
        """Convert STORAGE_QUOTA_MB to bytes, None when unlimited."""
        if self.STORAGE_QUOTA_MB <= 0:
            return None
        return self.STORAGE_QUOTA_MB * 1024 * 1024

    @property
    def max_request_bytes(self) -> int:
        """Convert MAX_REQUEST_MB to bytes."""
        return self.MAX_REQUEST_MB * 1024 * 1024

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def rate_limit_enabled(self) -> bool:
        """Rate limiting is switched off for local development."""
        return self.ENV != "local"

    @property
    def notifications_enabled(self) -> bool:
        """Only send e-mail when Postmark is configured."""
        return bool(self.POSTMARK_SERVER_TOKEN and self.POSTMARK_TEMPLATE_ID)


# Singleton settings instance
settings = Settings()
