from fastapi import Depends
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Annotated, Literal

from .constants import SERVICE_NAME

__all__ = [
    "Config",
    "get_config",
    "ConfigDependency",
]


class Config(BaseSettings):
    # Frozen so that the config is hashable and can be passed to lru_cache'd factories (see logger.get_logger)
    model_config = SettingsConfigDict(frozen=True)

    service_name: str = SERVICE_NAME

    # In debug mode, TLS certificates of the remote KoboToolbox instance are not verified and logs are rendered for
    # the console instead of as JSON lines.
    debug: bool = False
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    host: str = "0.0.0.0"
    port: int = 3000

    # Total timeout (in seconds) for a single call to the KoboToolbox API; matches aiohttp's default.
    kobo_request_timeout: float = 300.0

    # Only used by the CLI as a default when --token is not passed; the HTTP API always takes the token from the
    # request body.
    kobo_token: str = ""


@lru_cache()
def get_config() -> Config:
    return Config()


ConfigDependency = Annotated[Config, Depends(get_config)]
