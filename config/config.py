import os
from dotenv import load_dotenv
from typing import Optional

# Configuration constants
COLLECTOR_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbx_0ceWBWxqDHWD1o1IDTRRhO5brmfzabQSpO-cspQB7fzhRUeJbxFEbIalFptYL63T/exec"
)

SNAPSHOT_DIR = "snapshots"
SNAPSHOT_TABLE = "wizard_snapshots"

load_dotenv()

class Config:
    """Configuration class for the feedback wizard application."""

    # Collector configuration
    COLLECTOR_URL: str = os.getenv("COLLECTOR_URL", COLLECTOR_URL)

    # Snapshot storage configuration
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "file")
    SNAPSHOT_DIR: str = os.getenv("SNAPSHOT_DIR", SNAPSHOT_DIR)
    SNAPSHOT_TABLE: str = SNAPSHOT_TABLE
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Wizard behaviour
    AUTO_ADVANCE_DELAY: float = float(os.getenv("AUTO_ADVANCE_DELAY", "0.3"))
    DEFAULT_MAX_FILES: int = int(os.getenv("DEFAULT_MAX_FILES", "5"))
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    # Session configuration
    SESSION_TTL: int = int(os.getenv("SESSION_TTL", "86400"))  # 24 hours default

    # Web server configuration
    PORT: int = int(os.getenv("PORT", "3000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    WEB_AUTH_TOKEN: str = os.getenv("WEB_AUTH_TOKEN", "")
    SSL_CERT_PATH: Optional[str] = os.getenv("SSL_CERT_PATH")
    SSL_KEY_PATH: Optional[str] = os.getenv("SSL_KEY_PATH")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values."""
        if not cls.COLLECTOR_URL:
            raise ValueError("COLLECTOR_URL is required")
        if cls.STORAGE_BACKEND not in ("memory", "file", "database"):
            raise ValueError("STORAGE_BACKEND must be one of: memory, file, database")
        if cls.STORAGE_BACKEND == "database" and not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required for the database storage backend")
        if cls.AUTO_ADVANCE_DELAY < 0:
            raise ValueError("AUTO_ADVANCE_DELAY must not be negative")
