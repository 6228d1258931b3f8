from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(..., min_length=1, description="SQLAlchemy database URL")
    jwt_secret: str = Field(..., min_length=1, description="Token signing secret")
    port: int = Field(..., gt=0, lt=65536)
    host: str = Field("0.0.0.0")
    api_title: str = Field("Sweet Shop API")
    api_prefix: str = Field("/api")
    jwt_algorithm: str = Field("HS256")
    access_token_expire_minutes: int = Field(60, gt=0)
    bcrypt_rounds: int = Field(10, ge=4, le=31)
    rate_limit_enabled: bool = Field(True)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field("INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
