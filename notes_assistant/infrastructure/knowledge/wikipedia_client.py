"""Wikipedia knowledge provider — public summaries without an API key.

Resolves the query to a page title with OpenSearch, then fetches the REST
page summary. Absence of a result is a normal outcome: every failure path
returns ``None``.
"""

import logging
from urllib.parse import quote

import httpx

from notes_assistant.application.interfaces.knowledge_provider import KnowledgeProvider
from notes_assistant.domain.entities import WebSummary

logger = logging.getLogger(__name__)


class WikipediaKnowledgeProvider(KnowledgeProvider):
    """Infrastructure adapter — encyclopedia summaries from Wikipedia."""

    def __init__(
        self,
        base_url: str = "https://en.wikipedia.org",
        app_name: str = "Notes Assistant",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._http_client = http_client

    def _get_headers(self) -> dict[str, str]:
        # Wikimedia asks API clients to identify themselves
        return {"User-Agent": f"{self._app_name} (knowledge fallback)", "Accept": "application/json"}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=15.0, follow_redirects=True)

    async def summarize(self, entity_query: str) -> WebSummary | None:
        query = (entity_query or "").strip()
        if not query:
            return None

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            title, page_url = await self._resolve_title(client, query)
            if not title:
                logger.debug("No Wikipedia page for %r", query)
                return None
            return await self._fetch_summary(client, title, page_url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Wikipedia lookup for %r failed: %s", query, e)
            return None
        finally:
            if should_close:
                await client.aclose()

    async def _resolve_title(
        self, client: httpx.AsyncClient, query: str
    ) -> tuple[str | None, str | None]:
        response = await client.get(
            f"{self._base_url}/w/api.php",
            params={
                "action": "opensearch",
                "search": query,
                "limit": 1,
                "namespace": 0,
                "format": "json",
            },
            headers=self._get_headers(),
        )
        if response.status_code != 200:
            logger.warning("Wikipedia OpenSearch returned %d", response.status_code)
            return None, None

        # [query, [titles], [descriptions], [urls]]
        data = response.json()
        if not isinstance(data, list):
            return None, None
        titles = data[1] if len(data) > 1 else []
        urls = data[3] if len(data) > 3 else []
        return (titles[0] if titles else None), (urls[0] if urls else None)

    async def _fetch_summary(
        self, client: httpx.AsyncClient, title: str, page_url: str | None
    ) -> WebSummary | None:
        response = await client.get(
            f"{self._base_url}/api/rest_v1/page/summary/{quote(title, safe='')}",
            headers=self._get_headers(),
        )
        if response.status_code != 200:
            logger.warning(
                "Wikipedia summary for %r returned %d", title, response.status_code
            )
            return None

        data = response.json()
        extract = (data.get("extract") or "").strip()
        if not extract:
            return None

        # content_urls and its desktop entry may be absent or null
        urls = (data.get("content_urls") or {}).get("desktop") or {}
        url = urls.get("page") or page_url
        return WebSummary(
            title=(data.get("title") or title).strip(),
            extract=extract,
            url=url,
        )
