"""
Web search collaborator (Tavily REST API).
"""

import httpx
from pydantic import BaseModel

from vintellitour.core.config import SEARCH_MAX_RESULTS, TAVILY_API_KEY, TAVILY_SEARCH_URL, TOOL_TIMEOUT_SECONDS
from vintellitour.core.errors import UpstreamError
from vintellitour.core.logger import get_logger

log = get_logger(__name__)


class SearchResult(BaseModel):
    title: str = ""
    snippet: str = ""
    url: str = ""


class TavilySearchProvider:
    def __init__(
        self,
        api_key: str | None = TAVILY_API_KEY,
        max_results: int = SEARCH_MAX_RESULTS,
        url: str = TAVILY_SEARCH_URL,
        timeout: float = TOOL_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.max_results = max_results
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str) -> list[SearchResult]:
        if not self.api_key:
            raise UpstreamError("No API key found in TAVILY_API_KEY")

        payload = {
            "api_key": self.api_key,
            "query": query,
            "max_results": self.max_results,
            "search_depth": "advanced",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            log.warning("Search request failed for %r: %s", query, e)
            raise UpstreamError(f"Search failed: {type(e).__name__}: {e}")

        results = [
            SearchResult(
                title=item.get("title") or "",
                snippet=item.get("content") or item.get("snippet") or "",
                url=item.get("url") or "",
            )
            for item in (data.get("results") or [])
        ]
        log.debug("Search %r returned %d results", query, len(results))
        return results[: self.max_results]


__all__ = ["SearchResult", "TavilySearchProvider"]
