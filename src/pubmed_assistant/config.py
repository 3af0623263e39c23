"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    anthropic_api_key: str = ""
    ncbi_api_key: str = ""

    # LLM Settings
    llm_model: str = "claude-sonnet-4-6"
    llm_max_tokens: int = 1024
    max_tool_rounds: int = 3

    # PubMed / NCBI
    request_delay_seconds: float = 0.3
    request_timeout_seconds: float = 30.0
    default_max_results: int = 5

    # Conversation store
    conversation_ttl_seconds: int = 3600
    conversation_max_messages: int = 100

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
