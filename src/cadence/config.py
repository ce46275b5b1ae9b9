"""
Cadence Configuration

Environment-driven settings for the scheduled event engine.
"""
import os
from pathlib import Path
from typing import List
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load .env file from project root
_env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(_env_path)


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Configuration class for the Cadence engine"""

    BASE_DIR = Path(__file__).parent.parent.parent

    # Database settings
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "cadence")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")
    POSTGRES_DSN = os.getenv("POSTGRES_DSN", "")

    # API settings
    API_HOST = os.getenv("API_HOST", "127.0.0.1")
    API_PORT = int(os.getenv("API_PORT", "8200"))

    # JWT settings (current-actor resolution only)
    JWT_SECRET = os.getenv("JWT_SECRET", "cadence-secret-key-change-in-production")
    JWT_ALGORITHM = "HS256"

    # Batch processing trigger
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
    SCHEDULER_POLL_INTERVAL = int(os.getenv("SCHEDULER_POLL_INTERVAL", "60"))
    SCHEDULER_CRON = os.getenv("SCHEDULER_CRON", "")     # e.g. "*/5 * * * *"; overrides poll interval

    # Retry policy
    MAX_RETRY_ATTEMPTS = int(os.getenv("MAX_RETRY_ATTEMPTS", "3"))
    RETRY_DELAY_MS = int(os.getenv("RETRY_DELAY_MS", "60000"))   # not enforced, see DESIGN.md
    BATCH_CONCURRENCY = int(os.getenv("BATCH_CONCURRENCY", "1"))

    # Queries
    UPCOMING_WINDOW_DAYS = int(os.getenv("UPCOMING_WINDOW_DAYS", "7"))

    # Handler manifest overrides
    DISABLED_HANDLERS = _csv(os.getenv("DISABLED_HANDLERS", ""))

    @staticmethod
    def get_postgres_dsn() -> str:
        """Get PostgreSQL DSN with password handling"""
        if Config.POSTGRES_DSN:
            return Config.POSTGRES_DSN
        if Config.DB_PASSWORD:
            password = quote_plus(Config.DB_PASSWORD)
            return f"postgresql://{Config.DB_USER}:{password}@{Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}"
        return f"postgresql://{Config.DB_USER}@{Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}"
