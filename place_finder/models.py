"""Core data models shared by the place search pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class RawCandidate:
    """Unnormalized place record returned by any Google Places lookup."""

    place_id: Optional[str] = None
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    vicinity: Optional[str] = None
    photo_references: List[str] = field(default_factory=list)
    website: Optional[str] = None
    user_ratings_total: Optional[int] = None
    location: Optional[Dict[str, float]] = None
    raw: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "RawCandidate":
        """Build a candidate from a Places payload, ignoring absent or ill-typed fields."""
        photos = payload.get("photos")
        references: List[str] = []
        if isinstance(photos, list):
            for photo in photos:
                if isinstance(photo, dict) and photo.get("photo_reference"):
                    references.append(str(photo["photo_reference"]))

        geometry = payload.get("geometry")
        location = geometry.get("location") if isinstance(geometry, dict) else None

        return cls(
            place_id=_str_or_none(payload.get("place_id")),
            name=_str_or_none(payload.get("name")),
            formatted_address=_str_or_none(payload.get("formatted_address")),
            vicinity=_str_or_none(payload.get("vicinity")),
            photo_references=references,
            website=_str_or_none(payload.get("website")),
            user_ratings_total=_int_or_none(payload.get("user_ratings_total")),
            location=location if isinstance(location, dict) else None,
            raw=payload,
        )


@dataclass(slots=True)
class VendorInfo:
    """Website platform detected from a result's home page."""

    name: str
    logo: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "logo": self.logo, "url": self.url}


@dataclass(slots=True)
class FormattedResult:
    """Public search result record returned to callers."""

    place_id: str
    name: Optional[str]
    formatted_address: str = ""
    photo_url: Optional[str] = None
    website: Optional[str] = None
    review_count: int = 0
    vendor_info: Optional[VendorInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation; optional members that are unset are left out."""
        payload: Dict[str, Any] = {
            "name": self.name,
            "formatted_address": self.formatted_address,
            "place_id": self.place_id,
            "review_count": self.review_count,
        }
        if self.photo_url:
            payload["photo_url"] = self.photo_url
        if self.website:
            payload["website"] = self.website
        if self.vendor_info is not None:
            payload["vendorInfo"] = self.vendor_info.to_dict()
        return payload


@dataclass(frozen=True)
class QueryOverride:
    """Extra text search issued when a query mentions a known hard-to-find business."""

    trigger: str
    query: str

    def matches(self, text: Optional[str]) -> bool:
        return bool(text) and self.trigger.lower() in text.lower()


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
