"""Configuration management for zonecast."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Application configuration."""

    # Base paths
    BASE_DIR = Path(__file__).resolve().parent.parent.parent
    DATA_DIR = BASE_DIR / "data"
    LOG_DIR = BASE_DIR / "logs"

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/zonecast.db")

    # Flask settings
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
    FLASK_PORT = int(os.getenv("FLASK_PORT", "8080"))
    DEBUG = os.getenv("DEBUG", "False").lower() == "true"
    CRON_SECRET = os.getenv("CRON_SECRET", "")

    # Sonos control API
    SONOS_API_BASE = os.getenv("SONOS_API_BASE", "https://api.ws.sonos.com/control/api/v1")
    SONOS_ACCESS_TOKEN = os.getenv("SONOS_ACCESS_TOKEN", "")
    SONOS_CLIENT_ID = os.getenv("SONOS_CLIENT_ID", "")
    SONOS_CLIENT_SECRET = os.getenv("SONOS_CLIENT_SECRET", "")
    SONOS_HOUSEHOLD_ID = os.getenv("SONOS_HOUSEHOLD_ID", "")
    SONOS_TIMEOUT = float(os.getenv("SONOS_TIMEOUT", "10"))

    # Orchestration
    PAUSE_SETTLE_SECONDS = float(os.getenv("PAUSE_SETTLE_SECONDS", "1.0"))
    GROUP_CACHE_TTL_MINUTES = int(os.getenv("GROUP_CACHE_TTL_MINUTES", "30"))
    QUEUE_INTERVAL_SECONDS = int(os.getenv("QUEUE_INTERVAL_SECONDS", "60"))
    SCHEDULE_INTERVAL_SECONDS = int(os.getenv("SCHEDULE_INTERVAL_SECONDS", "300"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = Path(os.getenv("LOG_FILE", str(LOG_DIR / "zonecast.log")))

    @classmethod
    def ensure_directories(cls):
        """Create necessary directories if they don't exist."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)

config = Config()
