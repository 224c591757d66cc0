"""Utilities for collapsing raw Google Places candidates into result records."""

import logging
from typing import Iterable, List, Optional, Set
from urllib.parse import urlencode

from place_finder.models import FormattedResult, RawCandidate

logger = logging.getLogger(__name__)

PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"
DEFAULT_PHOTO_MAX_WIDTH = 400


def build_photo_url(photo_reference: str, api_key: str, max_width: int = DEFAULT_PHOTO_MAX_WIDTH) -> str:
    query = urlencode({"maxwidth": max_width, "photoreference": photo_reference, "key": api_key})
    return f"{PHOTO_URL}?{query}"


def resolve_address(candidate: RawCandidate) -> str:
    return candidate.formatted_address or candidate.vicinity or ""


def to_formatted_result(
    candidate: RawCandidate,
    api_key: str,
    photo_max_width: int = DEFAULT_PHOTO_MAX_WIDTH,
) -> FormattedResult:
    photo_url: Optional[str] = None
    if candidate.photo_references:
        photo_url = build_photo_url(candidate.photo_references[0], api_key, photo_max_width)

    return FormattedResult(
        place_id=candidate.place_id,
        name=candidate.name,
        formatted_address=resolve_address(candidate),
        photo_url=photo_url,
        website=candidate.website,
        review_count=candidate.user_ratings_total or 0,
    )


def format_and_deduplicate(
    candidates: Iterable[RawCandidate],
    api_key: str,
    *,
    photo_max_width: int = DEFAULT_PHOTO_MAX_WIDTH,
) -> List[FormattedResult]:
    """Keep the first candidate seen for every place id, in input order."""
    seen: Set[str] = set()
    formatted: List[FormattedResult] = []

    for candidate in candidates:
        if candidate is None or not candidate.place_id:
            logger.debug("Skipping candidate without place_id: %s", candidate)
            continue
        if candidate.place_id in seen:
            continue

        seen.add(candidate.place_id)
        formatted.append(to_formatted_result(candidate, api_key, photo_max_width))

    return formatted
