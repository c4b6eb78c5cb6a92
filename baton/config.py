"""Runtime configuration, read from the environment (BATON_* variables)."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BatonSettings(BaseSettings):
    """Orchestration settings (validated via Pydantic)"""

    model_config = SettingsConfigDict(env_prefix="BATON_", extra="ignore")

    # Models
    default_provider: str = "openai"
    default_model: str = "gpt-4o-mini"

    # Loop bounds
    max_handoffs: int = Field(default=5, ge=0, description="Handoffs allowed per run")
    max_turns: int = Field(default=10, ge=1, description="Model calls allowed per agent invocation")

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "baton"


@lru_cache()
def get_settings() -> BatonSettings:
    """Get the process settings, loaded once"""
    return BatonSettings()
