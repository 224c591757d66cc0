"""HTTP entrypoint exposing the place search pipeline."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from flask import Flask, jsonify, request

from place_finder.core.config import ConfigError, get_settings
from place_finder.core.gate import BotFilter, GateRejection, RequestGate, create_limiter
from place_finder.jobs.search import search_places

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

# ---------- App & gate ----------
app = Flask(__name__)

_settings = get_settings()
_limiter = create_limiter(app, storage_uri=_settings.rate_limit_storage_uri)
_gate = RequestGate(
    _limiter,
    max_requests=_settings.rate_limit_max_requests,
    window_seconds=_settings.rate_limit_window_seconds,
    bot_filter=BotFilter(),
)


@app.after_request
def add_cors_headers(response):
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never calls Google."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "api_key_configured": bool(settings.google_api_key),
                "vendor_detection_enabled": settings.vendor_detection_enabled,
            }
        ),
        200,
    )


@app.post("/search")
def search() -> Any:
    """
    Search Google Places for a free-text query.
    Required JSON field: query (non-empty string)
    """
    try:
        client = _gate.admit(request.headers)
    except GateRejection as rejection:
        response = jsonify({"error": rejection.reason})
        response.status_code = rejection.status_code
        if rejection.retry_after is not None:
            response.headers["Retry-After"] = str(rejection.retry_after)
        return response

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    query = payload.get("query") if isinstance(payload, dict) else None
    if not isinstance(query, str) or not query.strip():
        return jsonify({"error": "query is required"}), 400

    logger.info("Search request from client=%s", client)
    try:
        results = search_places(query)
    except ConfigError as exc:
        logger.error("Search unavailable: %s", exc)
        return jsonify({"error": str(exc)}), 500
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search failed for query=%r: %s", query, exc)
        return jsonify({"error": "search failed"}), 500

    return jsonify([result.to_dict() for result in results]), 200


def main() -> None:
    """Bind on 0.0.0.0:$PORT (default 8080)."""
    env_port = os.getenv("PORT")
    port = int(env_port or _settings.port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    if not _settings.google_api_key:
        logger.error("[BOOT] GOOGLE_PLACES_API_KEY is missing; /search will answer 500")

    app.run(host="0.0.0.0", port=port, threaded=True)


if __name__ == "__main__":
    main()
