"""
URL inspection over HTTP.

WHAT THIS DOES:
Two independent looks at a submitted URL:

1. check_safety — Google Web Risk Lookup API
       GET https://webrisk.googleapis.com/v1/uris:search
           ?uri=...&threatTypes=MALWARE&threatTypes=SOCIAL_ENGINEERING&...
   An empty JSON object means no known threat. Otherwise
   {"threat": {"threatTypes": [...]}} lists what the URL is flagged for.

2. fetch_page — a plain GET of the page itself. We keep the final URL after
   redirects, the status code, the title and meta description, the visible
   text (scripts and styles removed), whether the final URL is HTTPS and
   which security headers the server sends.

Neither method catches errors: the engine's collaborator boundary turns a
failure into an "unknown" safety result or an empty page snapshot.

USAGE:
    inspector = HttpUrlInspector()
    safety = await inspector.check_safety("https://example.com")
    page = await inspector.fetch_page("https://example.com")
    await inspector.close()
"""

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from trust_engine.config import get_settings
from trust_engine.models.schemas import PageSnapshot, UrlSafety
from trust_engine.services.collaborators.base import BaseUrlInspector

logger = logging.getLogger(__name__)

WEB_RISK_URL = "https://webrisk.googleapis.com/v1/uris:search"

THREAT_TYPES = ("MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE")

# Confidence we place in a Web Risk answer (it only knows listed URLs)
WEB_RISK_CONFIDENCE = 0.9

SECURITY_HEADERS = (
    "strict-transport-security",
    "content-security-policy",
    "x-frame-options",
    "x-content-type-options",
    "referrer-policy",
    "permissions-policy",
)

# Visible page text kept for claim extraction
MAX_PAGE_TEXT_CHARS = 5000

USER_AGENT = "trust-engine/0.1 (+content verification)"


# Never visible to a reader
_HIDDEN_TAGS = ["script", "style", "noscript", "template", "svg", "title"]


def parse_html(html: str) -> tuple[str, str, str]:
    """Return (title, description, visible text) for an HTML document."""
    soup = BeautifulSoup(html, "html.parser")

    title = " ".join(soup.title.get_text().split()) if soup.title else ""

    description = ""
    for meta in soup.find_all("meta"):
        name = (meta.get("name") or meta.get("property") or "").lower()
        if name in ("description", "og:description"):
            description = (meta.get("content") or "").strip()
            break

    for tag in soup(_HIDDEN_TAGS):
        tag.decompose()
    text = " ".join(soup.get_text(" ", strip=True).split())
    return title, description, text[:MAX_PAGE_TEXT_CHARS]


class HttpUrlInspector(BaseUrlInspector):
    """
    Safety lookup and page fetch using httpx.

    Args:
        web_risk_api_key: Web Risk credentials (default: from settings)
        client: Optional pre-built httpx client (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        web_risk_api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.web_risk_api_key = web_risk_api_key if web_risk_api_key is not None else settings.web_risk_api_key
        self.timeout = settings.collaborator_timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def check_safety(self, url: str) -> UrlSafety:
        """
        Look the URL up in Web Risk.

        Raises:
            RuntimeError: no Web Risk API key is configured
            httpx.HTTPError: the lookup failed
        """
        if not self.web_risk_api_key:
            raise RuntimeError("Web Risk API key is not configured")

        client = await self._get_client()
        params = [("key", self.web_risk_api_key), ("uri", url)]
        params.extend(("threatTypes", threat) for threat in THREAT_TYPES)

        response = await client.get(WEB_RISK_URL, params=params)
        response.raise_for_status()

        threats = response.json().get("threat", {}).get("threatTypes", [])
        if threats:
            logger.warning(f"URL {url} flagged by Web Risk: {threats}")
        return UrlSafety(is_safe=not threats, threats=threats, confidence=WEB_RISK_CONFIDENCE)

    async def fetch_page(self, url: str) -> PageSnapshot:
        """
        Fetch the page and summarise what we can see.

        Non-HTML responses keep their status and headers but no text.

        Raises:
            httpx.HTTPError: the request could not be made (DNS, TLS, timeout)
        """
        client = await self._get_client()
        response = await client.get(url)

        final_url = str(response.url)
        present_headers = [name for name in SECURITY_HEADERS if name in response.headers]

        title = description = text = ""
        content_type = response.headers.get("content-type", "")
        if "html" in content_type or not content_type:
            title, description, text = parse_html(response.text)

        logger.info(
            f"Fetched {final_url} (status {response.status_code}, "
            f"{len(text)} chars, {len(present_headers)} security headers)"
        )
        return PageSnapshot(
            final_url=final_url,
            status=response.status_code,
            title=title,
            description=description,
            text=text,
            uses_https=final_url.startswith("https://"),
            security_headers=present_headers,
        )

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
