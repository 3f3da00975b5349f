from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPIREMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "ExpireMap"
    app_version: str = "0.1.0"

    initial_bucket_count: int = Field(default=16, ge=1)
    load_factor: float = Field(default=0.75, gt=0)
    sweep_period_seconds: float = Field(default=1.0, gt=0)

    default_ttl_ms: int = 60_000
    max_ttl_ms: int = Field(default=86_400_000, ge=1)

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
