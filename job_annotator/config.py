"""Runtime settings.

Values come from the environment (a local `.env` file is loaded if present).
Malformed numbers fall back to the default with a warning rather than
aborting start-up.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PREFIX = "JOB_ANNOTATOR_"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


@dataclass(frozen=True)
class Settings:
    market: Optional[str] = None
    source: str = "JobsDB"
    stats_window_days: int = 30
    trending_days: int = 7
    trending_top_n: int = 20
    stale_after_hours: int = 24
    stale_limit: int = 100
    retention_created_days: int = 60
    retention_updated_days: int = 45
    feed_timeout_s: float = 20.0
    log_level: str = "INFO"


def _env(name: str) -> Optional[str]:
    value = os.getenv(PREFIX + name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _number(name: str, default, cast):
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r (not a number); using %s", PREFIX, name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring %s%s=%r (negative); using %s", PREFIX, name, raw, default)
        return default
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from the environment."""
    if dotenv:
        load_dotenv()
    d = Settings()
    return Settings(
        market=_env("MARKET") or d.market,
        source=_env("SOURCE") or d.source,
        stats_window_days=_number("STATS_WINDOW_DAYS", d.stats_window_days, int),
        trending_days=_number("TRENDING_DAYS", d.trending_days, int),
        trending_top_n=_number("TRENDING_TOP_N", d.trending_top_n, int),
        stale_after_hours=_number("STALE_AFTER_HOURS", d.stale_after_hours, int),
        stale_limit=_number("STALE_LIMIT", d.stale_limit, int),
        retention_created_days=_number("RETENTION_CREATED_DAYS", d.retention_created_days, int),
        retention_updated_days=_number("RETENTION_UPDATED_DAYS", d.retention_updated_days, int),
        feed_timeout_s=_number("FEED_TIMEOUT_S", d.feed_timeout_s, float),
        log_level=(_env("LOG_LEVEL") or d.log_level).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler. Entry points call this once; library code never does."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
