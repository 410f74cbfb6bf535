"""Configuration and environment settings for the Clarity API."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Clarity API.

    ``database_url`` and ``jwt_secret`` have no defaults: constructing settings without them
    fails, which stops the server at startup.
    """

    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    groq_api_key: str | None = None
    groq_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.25
    llm_max_completion_tokens: int = 512
    llm_timeout: float = 20.0
    cors_origins: list[str] = ["http://localhost:3000", "https://clarity-oscar.vercel.app"]
    api_prefix: str = "/api"
    log_level: str = "INFO"
    log_file: str | None = None
    server_host: str = "127.0.0.1"
    server_port: int = 5050

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
