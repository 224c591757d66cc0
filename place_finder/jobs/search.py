"""Multi-strategy Google Places search: expand, collect, deduplicate, enrich."""

import logging
from typing import Iterable, List, Optional, Sequence

from place_finder.core.config import Settings, get_settings
from place_finder.core.vendor_detector import VendorDetector
from place_finder.etl.query_expander import derive_business_name, expand_query
from place_finder.etl.transform import format_and_deduplicate
from place_finder.models import FormattedResult, QueryOverride, RawCandidate
from place_finder.vendors import google_places

logger = logging.getLogger(__name__)

DEFAULT_MAX_DETAIL_FETCHES = 3
DEFAULT_BROADEN_THRESHOLD = 3


def _safe_text_search(term: str, api_key: str, timeout: float, strategy: str) -> List[RawCandidate]:
    try:
        return google_places.text_search(term, api_key, timeout=timeout)
    except google_places.GooglePlacesError as exc:
        logger.warning("%s failed for term=%r: %s", strategy, term, exc)
        return []


def _find_and_fetch_details(term: str, api_key: str, timeout: float, max_detail_fetches: int) -> List[RawCandidate]:
    try:
        stubs = google_places.find_candidates(term, api_key, timeout=timeout)
    except google_places.GooglePlacesError as exc:
        logger.warning("find_candidates failed for term=%r: %s", term, exc)
        return []

    if len(stubs) > max_detail_fetches:
        logger.info("Capping detail fetches for term=%r at %d of %d candidates", term, max_detail_fetches, len(stubs))

    details: List[RawCandidate] = []
    for stub in stubs[:max_detail_fetches]:
        if not stub.place_id:
            logger.debug("Skipping candidate without place_id for term=%r", term)
            continue
        try:
            detail = google_places.place_details(stub.place_id, api_key, timeout=timeout)
        except google_places.GooglePlacesError as exc:
            logger.warning("place_details failed for %s: %s", stub.place_id, exc)
            continue
        if detail is not None:
            details.append(detail)
    return details


def _apply_overrides(
    texts: Sequence[Optional[str]],
    candidates: List[RawCandidate],
    overrides: Iterable[QueryOverride],
    api_key: str,
    timeout: float,
) -> List[RawCandidate]:
    extra: List[RawCandidate] = []
    for override in overrides:
        if not any(override.matches(text) for text in texts):
            continue
        if any(override.matches(candidate.name) for candidate in candidates):
            continue
        logger.info("Query mentions %r without a matching result; searching %r", override.trigger, override.query)
        extra.extend(_safe_text_search(override.query, api_key, timeout, "override search"))
    return extra


def collect_candidates(
    terms: Sequence[str],
    api_key: str,
    *,
    query: Optional[str] = None,
    overrides: Iterable[QueryOverride] = (),
    max_detail_fetches: int = DEFAULT_MAX_DETAIL_FETCHES,
    broaden_threshold: int = DEFAULT_BROADEN_THRESHOLD,
    timeout: float = google_places.DEFAULT_TIMEOUT,
) -> List[RawCandidate]:
    """Run every search strategy for every term and return all raw candidates.

    Per term, in order: text search; find-candidates followed by a detail fetch
    for at most ``max_detail_fetches`` of them; and, while fewer than
    ``broaden_threshold`` candidates have been gathered in the whole run, a text
    search on the term's first word. Afterwards each override whose trigger
    appears in the query (or the business name derived from it) adds one more
    text search, unless a gathered candidate already carries the trigger in its
    name.

    Failures of individual calls are logged and count as empty results, so
    this never raises for upstream errors.
    """
    candidates: List[RawCandidate] = []

    for term in terms:
        before = len(candidates)
        candidates.extend(_safe_text_search(term, api_key, timeout, "text_search"))
        candidates.extend(_find_and_fetch_details(term, api_key, timeout, max_detail_fetches))

        if len(candidates) < broaden_threshold:
            words = term.split()
            if words:
                candidates.extend(_safe_text_search(words[0], api_key, timeout, "broad text_search"))

        logger.info("Found %d results for term %r", len(candidates) - before, term)

    original = query if query is not None else (terms[0] if terms else None)
    texts = [original, derive_business_name(original or "")]
    candidates.extend(_apply_overrides(texts, candidates, overrides, api_key, timeout))

    return candidates


def search_places(
    query: str,
    *,
    settings: Optional[Settings] = None,
    detector: Optional[VendorDetector] = None,
) -> List[FormattedResult]:
    """Full pipeline for one user query.

    Raises ``ConfigError`` when no API key is configured and ``ValueError`` for
    a blank query. Upstream failures only shrink the result list.
    """
    settings = settings or get_settings()
    api_key = settings.require_api_key()

    if not query or not query.strip():
        raise ValueError("query must not be empty")
    query = query.strip()

    logger.info("Original search query: %s", query)
    terms = expand_query(query)
    logger.info("Processed search terms: %s", terms)

    candidates = collect_candidates(
        terms,
        api_key,
        query=query,
        overrides=settings.query_overrides,
        max_detail_fetches=settings.max_detail_fetches,
        broaden_threshold=settings.broaden_threshold,
        timeout=settings.request_timeout,
    )
    results = format_and_deduplicate(candidates, api_key, photo_max_width=settings.photo_max_width)
    logger.info("Total unique results: %d (from %d candidates)", len(results), len(candidates))

    if settings.vendor_detection_enabled:
        if detector is not None:
            detector.enrich(results)
        else:
            with VendorDetector(timeout=min(settings.request_timeout, 5)) as own_detector:
                own_detector.enrich(results)

    return results
