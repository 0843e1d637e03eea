"""Configuration management using Pydantic Settings."""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="BIBLIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API configuration
    api_base_url: str = Field("http://localhost:3000/api", description="Base URL of the bibliography API")
    access_token: Optional[str] = Field(None, description="Bearer token used until the session provides one")
    user_agent: str = Field("biblio-sync/0.1.0", description="User-Agent header sent with every request")

    # Transport
    request_timeout: float = Field(30.0, gt=0, description="Per-request timeout in seconds")
    connect_retries: int = Field(0, ge=0, le=5, description="Retries for failed connection attempts only")

    # Collection defaults
    page_size: int = Field(20, ge=1, le=100)
    search_debounce_seconds: float = Field(0.5, ge=0)

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# Default settings; components accept an explicit instance
settings = Settings()
