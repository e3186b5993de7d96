"""
Google Custom Search web grounding.

WHAT THIS DOES:
Looks a query up on the web so the engine has independent sources to show
next to its verdict. Uses the Custom Search JSON API:

    GET https://www.googleapis.com/customsearch/v1?key=...&cx=...&q=...&num=5

Each result item has a link, a title and a snippet. The API doesn't return
a relevance score, so hits are ranked by position: 100 - 10 × rank.

Without both an API key and a search engine id, grounding is disabled and
every query returns no hits.

USAGE:
    grounder = GoogleSearchGrounder()
    hits = await grounder.web_ground("Eiffel Tower height")
    await grounder.close()
"""

import logging
from typing import Optional

import httpx

from trust_engine.config import get_settings
from trust_engine.models.schemas import WebHit
from trust_engine.services.collaborators.base import BaseWebGrounder

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

# The API rejects num > 10
MAX_RESULTS_PER_QUERY = 10


def rank_relevance(rank: int) -> float:
    """Relevance on a 0-100 scale from a zero-based result position."""
    return max(0.0, 100.0 - 10.0 * rank)


class GoogleSearchGrounder(BaseWebGrounder):
    """
    Async client for the Custom Search JSON API.

    Args:
        api_key / engine_id: Credentials (default: from settings)
        max_results: Hits per query
        client: Optional pre-built httpx client (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        max_results: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.google_search_api_key
        self.engine_id = engine_id if engine_id is not None else settings.google_search_engine_id
        self.max_results = min(MAX_RESULTS_PER_QUERY, max_results or settings.web_search_max_results)
        self.timeout = settings.collaborator_timeout_seconds
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def web_ground(self, query: str) -> list[WebHit]:
        """
        Search the web for a query.

        Returns:
            Up to max_results hits in rank order. Empty when grounding is
            disabled or the query is blank.

        Raises:
            httpx.HTTPError: the request failed (the engine degrades this to no hits)
        """
        query = query.strip()
        if not self.enabled or not query:
            return []

        client = await self._get_client()
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": self.max_results,
        }

        try:
            response = await client.get(CUSTOM_SEARCH_URL, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Web search failed for '{query[:60]}': {e}")
            raise

        items = response.json().get("items", [])
        hits = [
            WebHit(
                url=item["link"],
                title=item.get("title", ""),
                snippet=item.get("snippet", ""),
                relevance=rank_relevance(rank),
            )
            for rank, item in enumerate(items[:self.max_results])
            if item.get("link")
        ]
        logger.info(f"Web search '{query[:60]}' returned {len(hits)} hits")
        return hits

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
