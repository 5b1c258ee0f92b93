# vortex/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Manages the node's settings, loading from environment variables
    and .env files.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # Logging settings. Logs always go to stderr; stdout carries the protocol.
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] (%(name)s) %(message)s"

    # Pipeline settings
    ENVELOPE_LOGGING: bool = True


# Create a single, globally accessible instance of the settings.
settings = Settings()
