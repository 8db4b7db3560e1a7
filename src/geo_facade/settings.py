from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    api_key: Optional[str] = None
    api_base_url: str = "https://maps.googleapis.com/maps/api"
    places_base_url: str = "https://api.zippopotam.us"
    timeout_s: float = 10.0
    language: Optional[str] = None

    # Token bucket: `bucket_capacity` calls per `bucket_refill_interval_s`
    bucket_capacity: int = 50
    bucket_refill_interval_s: float = 3600.0

    # Gateway retry
    max_attempts: int = 2
    retry_delay_s: float = 0.5

    model_config = SettingsConfigDict(
        env_prefix="GEO_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
