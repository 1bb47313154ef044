"""
News search client with rate limiting using aiolimiter.
"""
from aiohttp import ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter
from typing import Any, Dict, List, Optional
from loguru import logger

from company_pipeline.config import NEWS_API_KEY, NEWS_URL, NEWS_PAGE_SIZE, CONCURRENCY
from company_pipeline.errors import NewsSearchError
from company_pipeline.models import Article


class NewsClient:
    """
    Client for the NewsAPI `everything` endpoint.
    Uses AsyncLimiter for rate limiting instead of semaphores.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = NEWS_URL,
        page_size: int = NEWS_PAGE_SIZE,
        max_rate: float = CONCURRENCY,
    ):
        self.api_key = api_key or NEWS_API_KEY
        self.base_url = base_url
        self.page_size = page_size
        self.rate_limiter = AsyncLimiter(max_rate=max_rate, time_period=1.0)
        self._session: Optional[ClientSession] = None

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=30))
        return self._session

    async def search(self, company_name: str) -> List[Article]:
        """
        Search recent English-language articles mentioning a company.

        Args:
            company_name: Query string, usually the cleaned company name.

        Returns:
            Articles newest first.

        Raises:
            NewsSearchError: If the API answers with an error payload.
            aiohttp.ClientError / asyncio.TimeoutError: On transport failures.
        """
        params = {
            "q": company_name,
            "apiKey": self.api_key or "",
            "sortBy": "publishedAt",
            "language": "en",
            "pageSize": str(self.page_size),
        }
        async with self.rate_limiter:
            session = await self._get_session()
            try:
                async with session.get(self.base_url, params=params) as resp:
                    data = await resp.json()
            except Exception as e:
                logger.debug(f"⚠️ News search failed for '{company_name}': {e}")
                raise

        if data.get("status") != "ok":
            raise NewsSearchError(
                f"News API error ({data.get('code', 'unknown')}): {data.get('message', 'no details')}"
            )
        return [self._to_article(item) for item in data.get("articles") or []]

    @staticmethod
    def _to_article(item: Dict[str, Any]) -> Article:
        return Article(
            title=item.get("title") or "",
            content=item.get("content") or item.get("description") or "",
            url=item.get("url") or "",
            published_at=item.get("publishedAt"),
        )

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
