"""Service configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # Workspace
    WORKSPACE_ROOT: str = "."

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: list[str] = ["*"]

    # Cross-file validation
    CROSS_FILE_VALIDATION_ENABLED: bool = True
    DEBOUNCE_SECONDS: float = 0.5
    RESPONSE_PREFIX: str = "utter_"

    # Parser
    MAX_FILE_SIZE: int = 1048576

    # Event bus
    EVENT_HISTORY_SIZE: int = 100

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
