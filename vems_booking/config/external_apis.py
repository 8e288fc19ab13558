"""
External API configuration.
"""

from typing import Dict, Optional
from pydantic import BaseModel

from .settings import Settings


class ExternalAPIConfig(BaseModel):
    """External API configuration settings."""

    # Directory service
    directory_base_url: str = "https://vemsapi.azurewebsites.net/api"
    directory_api_token: Optional[str] = None
    directory_timeout: float = 10.0

    # SMS gateway
    sms_backend: str = "log"
    sms_base_url: Optional[str] = None
    sms_api_token: Optional[str] = None
    sms_sender_id: str = "VEMS"
    sms_timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExternalAPIConfig":
        return cls(
            directory_base_url=settings.directory_api_base,
            directory_api_token=settings.directory_api_token,
            directory_timeout=settings.directory_timeout,
            sms_backend=settings.sms_backend,
            sms_base_url=settings.sms_api_base,
            sms_api_token=settings.sms_api_token,
            sms_sender_id=settings.sms_sender_id,
            sms_timeout=settings.notification_timeout,
        )

    def get_sms_url(self) -> Optional[str]:
        """Get SMS send URL if configured."""
        if self.sms_base_url:
            return f"{self.sms_base_url.rstrip('/')}/messages"
        return None

    def directory_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.directory_api_token:
            headers["Authorization"] = f"Bearer {self.directory_api_token}"
        return headers

    def sms_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.sms_api_token:
            headers["Authorization"] = f"Bearer {self.sms_api_token}"
        return headers

    def is_sms_configured(self) -> bool:
        """Check if the HTTP SMS gateway is properly configured."""
        return self.sms_backend == "http" and bool(self.sms_base_url)
