"""
Configuration Management Module

Configures application parameters via environment variables or .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MODEL_ALIASES: dict[str, str] = {
    "gpt-3.5-turbo": "gemini-2.0-flash",
    "gpt-4": "gemini-2.5-pro",
    "gpt-4-turbo": "gemini-2.5-pro",
    "gpt-4-vision-preview": "gemini-2.5-flash",
    "gpt-4o": "gemini-2.5-flash",
    "gpt-4o-mini": "gemini-2.0-flash-lite",
}


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "Gemini OpenAI Proxy"
    DEBUG: bool = False

    # Server Config
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Gemini Backend Config
    # Credential used for every backend call; client bearer tokens are never forwarded
    GEMINI_API_KEY: str | None = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com"
    GEMINI_API_VERSION: str = "v1beta"

    # HTTP Client Config
    # Request timeout (seconds)
    HTTP_TIMEOUT: int = 300

    # CORS Config
    # Comma-separated list of allowed origins, "*" allows all
    ALLOWED_ORIGINS: str = "*"

    # Streaming Config
    # Capacity of the hand-off queue between the backend reader and the SSE writer
    STREAM_QUEUE_SIZE: int = Field(8, ge=1)

    # Message Conversion Config
    # Merge consecutive turns that map to the same Gemini role
    MERGE_CONSECUTIVE_ROLES: bool = True
    # "fold": prefix leading system messages onto the first user turn
    # "instruction": send them as Gemini systemInstruction
    SYSTEM_MESSAGE_MODE: Literal["fold", "instruction"] = "fold"

    # Model Mapping Config
    # OpenAI model name -> Gemini model name, JSON object when set from the environment
    MODEL_ALIASES: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODEL_ALIASES))
    # Gemini model used when an OpenAI embedding model name is requested
    DEFAULT_EMBEDDING_MODEL: str = "text-embedding-004"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
