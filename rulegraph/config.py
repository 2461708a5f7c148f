"""
Configuration settings for RuleGraph.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "RuleGraph"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Graph engine
    MAX_STEPS: int = 25  # Node executions allowed per run

    # Model inference
    ANTHROPIC_API_KEY: Optional[str] = None
    CHAT_MODEL: str = "claude-3-5-sonnet-20240620"
    CLASSIFIER_MODEL: str = "claude-3-haiku-20240307"
    MODEL_TEMPERATURE: float = 0.0
    MODEL_MAX_TOKENS: int = 4096

    # Shared value store (in-memory unless both are set)
    KV_REST_API_URL: Optional[str] = None
    KV_REST_API_TOKEN: Optional[str] = None

    # Writing assistant
    DEFAULT_SYSTEM_RULES: List[str] = [
        "Write clearly and concisely.",
        "Match the tone and format the user asks for.",
        "Do not invent facts, quotes, or statistics.",
        "Only return the requested content, without extra commentary.",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
