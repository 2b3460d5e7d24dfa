import os
import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger('config')

_NUMERIC_PREFIX = re.compile(r'^\s*-?\d+\.?\d*')


def _env_float(name: str, default: float) -> float:
    # Values like "1  # hours" are common in hand-edited .env files
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    match = _NUMERIC_PREFIX.match(raw)
    if match:
        return float(match.group(0))
    logger.warning(f"Error parsing {name}={raw!r}. Using default value of {default}")
    return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///price_tracker.db"
    scrape_interval_hours: float = 1.0
    request_timeout: float = 15.0
    max_retries: int = 2
    retry_delay: float = 2.0
    sweep_workers: int = 1
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    enable_scheduler: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = "price_tracker.log"
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and .env, if present)."""
        log_file = os.getenv("LOG_FILE", "price_tracker.log")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///price_tracker.db"),
            scrape_interval_hours=_env_float("SCRAPE_INTERVAL_HOURS", 1.0),
            request_timeout=_env_float("REQUEST_TIMEOUT", 15.0),
            max_retries=max(1, _env_int("MAX_RETRIES", 2)),
            retry_delay=_env_float("RETRY_DELAY", 2.0),
            sweep_workers=max(1, _env_int("SWEEP_WORKERS", 1)),
            allowed_origins=_env_list("ALLOWED_ORIGINS", ["*"]),
            enable_scheduler=_env_bool("ENABLE_SCHEDULER", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=log_file or None,
            port=_env_int("PORT", 3000),
        )
