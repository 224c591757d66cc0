"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional

import requests

from place_finder.models import RawCandidate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DEFAULT_TIMEOUT = 10
FIND_CANDIDATE_FIELDS = "place_id,name,formatted_address,photos,website,user_ratings_total,geometry"
DETAIL_FIELDS = "place_id,name,formatted_address,photos,website,user_ratings_total"


class GooglePlacesError(RuntimeError):
    """Raised when a Places API call does not produce usable data."""


class TransportError(GooglePlacesError):
    """Network failure, timeout, non-2xx response or non-successful API status."""


class MalformedResponseError(GooglePlacesError):
    """The Places API answered with JSON of an unexpected shape."""


def _get(endpoint: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    url = f"{_BASE_URL}/{endpoint}/json"
    try:
        response = _SESSION.get(url, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(f"{endpoint} request failed: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"{endpoint} returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"{endpoint} returned {type(payload).__name__}, expected an object")

    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS", None}:
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, payload.get("error_message"))
        raise TransportError(payload.get("error_message") or status)
    return payload


def _to_candidates(endpoint: str, items: Any) -> List[RawCandidate]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedResponseError(f"{endpoint} results are {type(items).__name__}, expected a list")

    candidates = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object %s entry: %r", endpoint, item)
            continue
        candidates.append(RawCandidate.from_api(item))
    return candidates


def text_search(query: str, api_key: str, *, timeout: float = DEFAULT_TIMEOUT) -> List[RawCandidate]:
    params = {"query": query, "key": api_key}
    payload = _get("textsearch", params, timeout)
    return _to_candidates("textsearch", payload.get("results"))


def find_candidates(query: str, api_key: str, *, timeout: float = DEFAULT_TIMEOUT) -> List[RawCandidate]:
    """Coarse lookup for places matching the query text exactly."""
    params = {
        "input": query,
        "inputtype": "textquery",
        "fields": FIND_CANDIDATE_FIELDS,
        "key": api_key,
    }
    payload = _get("findplacefromtext", params, timeout)
    return _to_candidates("findplacefromtext", payload.get("candidates"))


def place_details(
    place_id: str,
    api_key: str,
    *,
    fields: str = DETAIL_FIELDS,
    timeout: float = DEFAULT_TIMEOUT,
) -> Optional[RawCandidate]:
    params = {"place_id": place_id, "fields": fields, "key": api_key}
    payload = _get("details", params, timeout)
    result = payload.get("result")
    if result is None:
        return None
    if not isinstance(result, dict):
        raise MalformedResponseError(f"details result is {type(result).__name__}, expected an object")
    return RawCandidate.from_api(result)
