"""Website vendor detection for place results that expose a website."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse, urlunparse

import requests
from bs4 import BeautifulSoup

from place_finder.models import FormattedResult, VendorInfo

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
REQUEST_TIMEOUT = 5
MAX_WORKERS = 4
_FAVICON_URL = "https://www.google.com/s2/favicons?sz=64&domain={domain}"


@dataclass(frozen=True)
class VendorSignature:
    name: str
    url: str
    markers: Tuple[str, ...]
    generator: Optional[str] = None

    @property
    def logo(self) -> str:
        return _FAVICON_URL.format(domain=urlparse(self.url).netloc)

    def to_vendor_info(self) -> VendorInfo:
        return VendorInfo(name=self.name, logo=self.logo, url=self.url)


# Order matters: AgentFire sites are built on WordPress and must match first.
VENDOR_SIGNATURES: Tuple[VendorSignature, ...] = (
    VendorSignature("AgentFire", "https://agentfire.com", ("agentfire",)),
    VendorSignature("Shopify", "https://www.shopify.com", ("cdn.shopify.com", "shopify.theme"), generator="shopify"),
    VendorSignature("Wix", "https://www.wix.com", ("static.wixstatic.com", "wix-code", "_wixcss"), generator="wix.com"),
    VendorSignature("Squarespace", "https://www.squarespace.com", ("static1.squarespace.com", "squarespace-cdn"), generator="squarespace"),
    VendorSignature("Webflow", "https://webflow.com", ("assets.website-files.com", "data-wf-page"), generator="webflow"),
    VendorSignature("GoDaddy Website Builder", "https://www.godaddy.com", ("img1.wsimg.com", "godaddy website builder"), generator="go daddy"),
    VendorSignature("Weebly", "https://www.weebly.com", ("editmysite.com", "weebly.com"), generator="weebly"),
    VendorSignature("Duda", "https://www.duda.co", ("irp.cdn-website.com", "dudaone"), generator="duda"),
    VendorSignature("HubSpot", "https://www.hubspot.com", ("js.hs-scripts.com", "hs-sites.com"), generator="hubspot"),
    VendorSignature("WordPress", "https://wordpress.org", ("wp-content/", "wp-includes/"), generator="wordpress"),
)


def normalize_website(raw_url: str) -> Optional[str]:
    """Absolute http(s) URL for a listed website, https when no scheme is given."""
    url = (raw_url or "").strip()
    if not url:
        return None
    if "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return urlunparse(parsed._replace(path=parsed.path or "/", fragment=""))


def fetch_html(session: requests.Session, url: str, *, timeout: float = REQUEST_TIMEOUT) -> Optional[str]:
    """Fetch a URL and return its body when it is HTML content."""

    try:
        response = session.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except requests.RequestException as exc:  # noqa: BLE001
        logger.warning("Failed to fetch %s: %s", url, exc)
        return None

    content_type = response.headers.get("Content-Type", "").lower()
    if "text/html" not in content_type:
        logger.debug("Skipping non-HTML content at %s (content-type=%s)", url, content_type)
        return None
    return response.text


def match_vendor(html: str, signatures: Sequence[VendorSignature] = VENDOR_SIGNATURES) -> Optional[VendorSignature]:
    """Return the first signature matched by the generator meta tag or raw markup."""

    if not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    generator_tag = soup.find("meta", attrs={"name": "generator"})
    generator = (generator_tag.get("content") or "").lower() if generator_tag else ""
    lowered = html.lower()

    for signature in signatures:
        if generator and signature.generator and signature.generator in generator:
            return signature
        if any(marker in lowered for marker in signature.markers):
            return signature
    return None


class VendorDetector:
    """Fetch result websites and attach the detected platform to each result."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        signatures: Sequence[VendorSignature] = VENDOR_SIGNATURES,
        timeout: float = REQUEST_TIMEOUT,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.session.headers.setdefault("Accept", "text/html,application/xhtml+xml")
        self.session.headers.setdefault("Accept-Language", "en-US,en;q=0.9")
        self.signatures = tuple(signatures)
        self.timeout = timeout
        self.max_workers = max_workers

    def detect(self, website: Optional[str]) -> Optional[VendorInfo]:
        url = normalize_website(website or "")
        if not url:
            return None

        html = fetch_html(self.session, url, timeout=self.timeout)
        if html is None:
            return None

        signature = match_vendor(html, self.signatures)
        if signature is None:
            logger.debug("No known vendor detected for %s", url)
            return None
        logger.info("Detected vendor %s for %s", signature.name, url)
        return signature.to_vendor_info()

    def _detect_safe(self, website: Optional[str]) -> Optional[VendorInfo]:
        try:
            return self.detect(website)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Vendor detection failed for %s: %s", website, exc)
            return None

    def enrich(self, results: List[FormattedResult]) -> List[FormattedResult]:
        """Set ``vendor_info`` on every result that has a website; order is kept."""

        targets = [result for result in results if result.website]
        if not targets:
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            detected = list(executor.map(self._detect_safe, [result.website for result in targets]))

        for result, vendor_info in zip(targets, detected):
            result.vendor_info = vendor_info
        return results

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "VendorDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()
