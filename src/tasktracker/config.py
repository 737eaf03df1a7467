from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field("sqlite+aiosqlite:///tasks.db")
    database_echo: bool = Field(False)
    api_title: str = Field("Task Tracker API")
    environment: str = Field("development")
    version: str = Field("1.0.0")
    jwt_secret: str = Field("dev-secret-key-change-me-in-production")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(60 * 24)
    bcrypt_rounds: int = Field(10, ge=4, le=31)
    default_page_size: int = Field(50, gt=0)
    max_page_size: int = Field(100, gt=0)
    auth_rate_limit: str = Field("5/minute")
    rate_limit_enabled: bool = Field(True)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    seed_sample_data: bool = Field(False)
    host: str = Field("0.0.0.0")
    port: int = Field(5000)
    log_level: str = Field("INFO")


settings = Settings()
