from datetime import datetime, timezone
from typing import Any, List, Protocol, Tuple

from loguru import logger

from company_pipeline.ai.base import AIModel
from company_pipeline.ai.prompts import SIGNALS_SYSTEM_PROMPT, SIGNALS_USER_TEMPLATE
from company_pipeline.enrichment.scoring import calculate_confidence_score
from company_pipeline.errors import EnrichmentError
from company_pipeline.models import (
    SIGNAL_CATEGORIES,
    Article,
    Company,
    CompanySignals,
    CompletionRequest,
    EnrichmentResult,
)


class NewsSearch(Protocol):
    async def search(self, company_name: str) -> List[Article]:
        ...


def format_articles(articles: List[Article]) -> str:
    """One `title (published): content` paragraph per article."""
    return "\n\n".join(
        f"{article.title} ({article.published_at or 'unknown date'}): {article.content}"
        for article in articles
    )


def parse_signals(data: Any) -> CompanySignals:
    """
    Decode the model's JSON into CompanySignals.

    Missing categories become empty lists. If any category is present but is
    not a list of strings, the whole answer is discarded and all categories are empty.
    """
    if not isinstance(data, dict):
        return CompanySignals()

    values = {}
    for name in SIGNAL_CATEGORIES:
        value = data.get(name, [])
        if value is None:
            value = []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            logger.debug(f"Discarding malformed signals: category '{name}' is {value!r}")
            return CompanySignals()
        values[name] = value
    return CompanySignals(**values)


class CompanyEnrichmentService:
    """
    Derives sales signals and a confidence score for a company from recent news.

    Only the news search is a hard dependency. Once it succeeds, enrichment always
    returns a result, degrading to empty signals if the AI step fails.
    """

    def __init__(self, model: AIModel, news_client: NewsSearch):
        self.model = model
        self.news_client = news_client

    async def enrich_company(self, company: Company) -> EnrichmentResult:
        """
        Enrich a persisted company.

        Raises:
            EnrichmentError: If the news search fails.
        """
        try:
            articles = await self.news_client.search(company.name)
        except Exception as e:
            logger.warning(f"⚠️ News search failed for {company.name}: {e}")
            raise EnrichmentError(f"Failed to enrich company data: {e}") from e

        signals, cost = await self._extract_signals(company, articles)
        confidence = calculate_confidence_score(len(articles), signals)

        result = EnrichmentResult(
            signals=signals,
            sources=[article.url for article in articles],
            confidence_score=confidence,
            enriched_at=datetime.now(timezone.utc),
            cost=cost,
        )
        logger.debug(
            f"🔍 Enriched {company.name}: {len(articles)} articles, "
            f"{signals.total()} signals, confidence {confidence}"
        )
        return result

    async def _extract_signals(
        self, company: Company, articles: List[Article]
    ) -> Tuple[CompanySignals, float]:
        news = format_articles(articles)
        request = CompletionRequest(
            system_prompt=SIGNALS_SYSTEM_PROMPT,
            user_prompt=SIGNALS_USER_TEMPLATE.format(
                name=company.name,
                domain=company.domain or "unknown",
                country=company.country or "unknown",
                employee_size=company.employee_size,
                news=news,
            ),
            data={"news_content": news, "company_info": company.to_dict()},
        )

        try:
            response = await self.model.complete(request)
        except Exception as e:
            logger.warning(f"⚠️ AI signal extraction failed for {company.name}: {e}")
            return CompanySignals(), 0.0

        cost = response.cost or 0.0
        if not response.success or response.data is None:
            logger.warning(f"⚠️ AI signal extraction failed for {company.name}: {response.error}")
            return CompanySignals(), cost
        return parse_signals(response.data), cost
