"""Request gate guarding the search endpoint: bot filter plus per-client rate limit."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from flask import Flask, request
from flask_limiter import Limiter
from limits import RateLimitItem, RateLimitItemPerSecond

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
RATE_LIMIT_SCOPE = "search"
BOT_SIGNATURES = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "headless",
    "phantomjs",
    "selenium",
    "puppeteer",
    "playwright",
    "curl",
    "wget",
    "python-requests",
    "httpclient",
    "go-http-client",
)


class GateRejection(Exception):
    """Raised when a request is turned away before any outbound call is made."""

    def __init__(self, reason: str, status_code: int, retry_after: Optional[int] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code
        self.retry_after = retry_after


def _normalize(headers: Mapping[str, str]) -> Dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def client_key(headers: Mapping[str, str]) -> str:
    forwarded = _normalize(headers).get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    return first or UNKNOWN_CLIENT


def request_client_key() -> str:
    """Flask-Limiter key function for the current request."""
    return client_key(request.headers)


def create_limiter(app: Flask, *, storage_uri: str = "memory://") -> Limiter:
    """Moving-window limiter bound to ``app``; the storage expires idle clients itself."""
    return Limiter(
        request_client_key,
        app=app,
        storage_uri=storage_uri,
        strategy="moving-window",
    )


class BotFilter:
    def __init__(self, signatures: Iterable[str] = BOT_SIGNATURES) -> None:
        self.signatures = tuple(s.lower() for s in signatures)

    def is_bot(self, headers: Mapping[str, str]) -> bool:
        normalized = _normalize(headers)
        user_agent = (normalized.get("user-agent") or "").lower()
        if not user_agent:
            return True
        if any(signature in user_agent for signature in self.signatures):
            return True
        # Browsers navigating from a page send at least one of these.
        return not normalized.get("referer") and not normalized.get("accept-language")


class RequestGate:
    """Reject bots first, then count the request against the client's window."""

    def __init__(
        self,
        limiter: Limiter,
        *,
        max_requests: int = 10,
        window_seconds: int = 60,
        bot_filter: Optional[BotFilter] = None,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.limiter = limiter
        self.limit: RateLimitItem = RateLimitItemPerSecond(max_requests, window_seconds)
        self.bot_filter = bot_filter or BotFilter()

    def admit(self, headers: Mapping[str, str]) -> str:
        """Return the client key for an admitted request or raise GateRejection."""
        key = client_key(headers)
        if self.bot_filter.is_bot(headers):
            logger.info("Rejecting likely bot client=%s user_agent=%r", key, _normalize(headers).get("user-agent"))
            raise GateRejection("bot_detected", 403)
        if not self.limiter.limiter.hit(self.limit, RATE_LIMIT_SCOPE, key):
            logger.info("Rate limit exceeded for client=%s", key)
            raise GateRejection("rate_limited", 429, retry_after=self.limit.get_expiry())
        return key

