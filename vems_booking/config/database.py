"""
Database configuration.
"""

from pydantic import BaseModel

from .settings import Settings


class DatabaseConfig(BaseModel):
    """SQLite store configuration."""

    path: str = "vems_booking.db"
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        return cls(path=settings.database_path, timeout=settings.database_timeout)
