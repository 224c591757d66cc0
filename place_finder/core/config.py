"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

from place_finder.models import QueryOverride

logger = logging.getLogger(__name__)

DEFAULT_QUERY_OVERRIDES = "agentfire=AgentFire web development"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    port: int = 8080
    request_timeout: float = 10.0
    max_detail_fetches: int = 3
    broaden_threshold: int = 3
    photo_max_width: int = 400
    query_overrides: Tuple[QueryOverride, ...] = ()
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: int = 60
    rate_limit_storage_uri: str = "memory://"
    vendor_detection_enabled: bool = False

    def require_api_key(self) -> str:
        if not self.google_api_key:
            raise ConfigError("GOOGLE_PLACES_API_KEY is not set.")
        return self.google_api_key


def parse_query_overrides(raw: str) -> Tuple[QueryOverride, ...]:
    """Parse ``trigger=query`` pairs separated by semicolons."""
    overrides = []
    for chunk in (raw or "").split(";"):
        if not chunk.strip():
            continue
        trigger, sep, query = chunk.partition("=")
        if not sep or not trigger.strip() or not query.strip():
            logger.warning("Ignoring malformed query override %r", chunk)
            continue
        overrides.append(QueryOverride(trigger=trigger.strip(), query=query.strip()))
    return tuple(overrides)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d", name, raw, default)
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_PLACES_API_KEY", "")
    overrides_raw = os.getenv("PLACES_QUERY_OVERRIDES", DEFAULT_QUERY_OVERRIDES)
    vendor_detection_enabled = os.getenv("VENDOR_DETECTION_ENABLED", "false").lower() in {"1", "true", "yes"}

    if not google_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; place searches will fail.")

    return Settings(
        google_api_key=google_api_key,
        port=_get_int("PORT", 8080),
        request_timeout=_get_float("PLACES_REQUEST_TIMEOUT", 10.0),
        max_detail_fetches=max(0, _get_int("PLACES_MAX_DETAIL_FETCHES", 3)),
        broaden_threshold=_get_int("PLACES_BROADEN_THRESHOLD", 3),
        photo_max_width=_get_int("PLACES_PHOTO_MAX_WIDTH", 400),
        query_overrides=parse_query_overrides(overrides_raw),
        rate_limit_max_requests=_get_int("RATE_LIMIT_MAX_REQUESTS", 10),
        rate_limit_window_seconds=_get_int("RATE_LIMIT_WINDOW_SECONDS", 60),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI") or "memory://",
        vendor_detection_enabled=vendor_detection_enabled,
    )
