"""Runtime configuration read from the environment."""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from helios.cache import DISPLAY_MAX_AGE, FRESHNESS_WINDOW
from helios.render import DEFAULT_PRINCIPAL

LISTEN_HOST = "127.0.0.1"


class Settings(BaseSettings):
    port: int = Field(default=7889, validation_alias=AliasChoices("PORT", "HELIOS_PORT"))
    principal: str = DEFAULT_PRINCIPAL
    freshness_window: int = Field(default=FRESHNESS_WINDOW, gt=0)
    display_max_age: int = Field(default=DISPLAY_MAX_AGE, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="HELIOS_", extra="ignore", populate_by_name=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()
