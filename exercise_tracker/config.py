from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components."""

    app_name: str = "exercise-tracker"
    version: str = "0.1.0"
    mongo_uri: str = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/exercise-tracker",
    )
    mongo_database: str = os.getenv("MONGO_DATABASE", "exercise-tracker")
    mongo_timeout_ms: int = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))
    http_host: str = os.getenv("HTTP_HOST", "0.0.0.0")
    http_port: int = int(os.getenv("PORT", "3000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    views_dir: str = os.getenv("VIEWS_DIR", os.path.join(_PACKAGE_DIR, "views"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
