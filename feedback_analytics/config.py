"""Configuration management for the feedback analytics service."""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # OpenAI Configuration
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
    AI_TIMEOUT_SECONDS = int(os.getenv("AI_TIMEOUT_SECONDS", "5"))
    AI_PROVIDER_ENABLED = os.getenv("AI_PROVIDER_ENABLED", "true").lower() == "true"

    # API Configuration
    API_KEY = os.getenv("API_KEY", "test-api-key-12345")

    # Database Configuration
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./feedback_analytics.db")

    # Verdict cache Configuration
    CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", "1000"))
    CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "3600"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Response fields whose key marks them as a rating
    RATING_KEY_HINTS = ["rating", "star", "score"]

    # The insights query only looks at the most recent feedback
    INSIGHTS_FEEDBACK_LIMIT = 100


config = Config()
