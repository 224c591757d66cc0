"""Turn a raw user query into the search-term variants sent to Google Places."""

import re
from typing import List, Optional
from urllib.parse import urlparse

_TLD_SUFFIX = re.compile(r"\.(com|org|net|io|co|us|ca|app|ai|dev)$", re.IGNORECASE)
_NON_WORD = re.compile(r"[^\w\s]")
_DOMAIN_LIKE = re.compile(r"^(?:[a-z0-9-]+\.)+[a-z]{2,}$", re.IGNORECASE)


def clean_query(query: str) -> str:
    lowered = query.lower()
    lowered = _TLD_SUFFIX.sub("", lowered)
    return _NON_WORD.sub(" ", lowered).strip()


def expand_query(query: str) -> List[str]:
    """Return the unique term variants for ``query``, original first."""
    terms = [query]

    cleaned = clean_query(query)
    if cleaned != query.lower():
        terms.append(cleaned)

    terms.append(f"{cleaned} company")
    terms.append(f"{cleaned} business")

    return list(dict.fromkeys(terms))


def derive_business_name(query: str) -> Optional[str]:
    """Extract the business label from a domain-like query.

    ``"https://www.agentfire.com/about"`` and ``"agentfire.com"`` both yield
    ``"agentfire"``; free text such as ``"coffee near me"`` yields ``None``.
    """
    text = (query or "").strip()
    if not text:
        return None

    try:
        parsed = urlparse(text if "://" in text else f"//{text}")
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None
    if not _DOMAIN_LIKE.match(host):
        return None

    labels = host.split(".")
    if labels[0] == "www":
        labels = labels[1:]
    if len(labels) < 2:
        return None
    # "shop.example.co.uk" keeps "example" rather than "co".
    if len(labels) >= 3 and len(labels[-1]) == 2 and labels[-2] in {"co", "com", "org", "net", "ac", "gov"}:
        return labels[-3]
    return labels[-2]
