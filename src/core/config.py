"""
Configuration for the receipt client.
Settings are read from SMARTRECEIPT_* environment variables or a .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Backend base URL, e.g. SMARTRECEIPT_API_URL=https://api.example.com
    api_url: str = "http://localhost:8000"

    model_config = SettingsConfigDict(
        env_prefix="SMARTRECEIPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
