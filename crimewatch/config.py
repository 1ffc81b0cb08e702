"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crimewatch.domain import Granularity
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the crimewatch service."""
    model_config = SettingsConfigDict(env_prefix="CRIMEWATCH_", extra="ignore")

    police_api_base_url: str = "https://data.police.uk/api"
    user_agent: str = "crimewatch/0.1"
    http_timeout_seconds: float = 15.0
    http_retries: int = 0  # one attempt per resolver call unless raised
    http_backoff_factor: float = 0.2
    http_cache_seconds: int = 0  # 0 disables the HTTP-level cache
    period_ttl_hours: float = 24.0
    street_movement_threshold_m: float = 200.0
    force_radius_km: float = 1.6
    force_movement_multiplier: float = 500.0  # metres of movement per km of radius
    default_granularity: Granularity = Granularity.NEIGHBOURHOOD
    activity_log_max_entries: int = 500
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("police_api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
