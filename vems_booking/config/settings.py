"""
Application settings and configuration.
"""

from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "VEMS Booking Core"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_path: str = "vems_booking.db"
    database_timeout: float = 30.0

    # Directory API (patients, facilities, contract services, practitioners)
    directory_api_base: str = "https://vemsapi.azurewebsites.net/api"
    directory_api_token: Optional[str] = None
    directory_timeout: float = 10.0

    # SMS gateway
    sms_backend: Literal["http", "log"] = "log"
    sms_api_base: Optional[str] = None
    sms_api_token: Optional[str] = None
    sms_sender_id: str = "VEMS"
    notification_timeout: float = 10.0

    # OTP
    otp_length: int = Field(default=5, ge=4, le=10)
    otp_ttl_seconds: int = Field(default=300, gt=0)
    otp_expose_code: bool = False
    otp_delivery_background: bool = False

    # Housekeeping
    housekeeping_interval_seconds: int = 0
    challenge_retention_seconds: int = 7 * 24 * 3600

    # Worklist
    default_per_page: int = 15
    max_per_page: int = 100

    # Timezone
    timezone: str = "Africa/Nairobi"

    # Logging
    log_level: str = "INFO"
    event_log_path: str = "vems_event_log.jsonl"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
