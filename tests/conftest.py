"""
Shared fixtures: fake collaborators for the AI model, news search and store.
"""
import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio

from company_pipeline.ai.base import AIModel
from company_pipeline.ai.prompts import SIGNALS_SYSTEM_PROMPT
from company_pipeline.db.session import create_engine_and_sessionmaker, init_models
from company_pipeline.db.store import CompanyStore, SQLCompanyStore
from company_pipeline.errors import NotFoundError
from company_pipeline.models import (
    AIModelConfig,
    Article,
    CleanedRecord,
    Company,
    CompanyFilters,
    CompletionRequest,
    CompletionResponse,
    EnrichmentResult,
)

COUNTRY_NAMES = {"us": "United States", "uk": "United Kingdom", "de": "Germany"}


def default_clean(data: Dict[str, Any]) -> CompletionResponse:
    """Deterministic stand-in for the model's cleaning answer."""
    name = (data.get("name") or "").replace(" Inc.", "").replace(" LLC", "").strip()
    country = (data.get("country") or "").lower()
    return CompletionResponse(
        success=True,
        data={
            "name": name,
            "domain": data.get("domain") or None,
            "country": COUNTRY_NAMES.get(country, country.title() or None),
            "employee_size": "10,000+" if data.get("employee_size") == "10001" else "51-200",
        },
        tokens_used=100,
        cost=0.001,
    )


def default_signals(data: Dict[str, Any]) -> CompletionResponse:
    return CompletionResponse(
        success=True,
        data={"funding_events": ["Raised a Series B"], "hiring_signals": ["Hiring 50 engineers"]},
        tokens_used=200,
        cost=0.002,
    )


class FakeAIModel(AIModel):
    """AIModel that answers cleaning and signal requests with plain functions."""

    provider = "fake"

    def __init__(
        self,
        clean_fn: Callable[[Dict[str, Any]], CompletionResponse] = default_clean,
        signals_fn: Callable[[Dict[str, Any]], CompletionResponse] = default_signals,
    ):
        super().__init__(AIModelConfig(provider="fake", model="fake-model"))
        self.clean_fn = clean_fn
        self.signals_fn = signals_fn
        self.requests: List[CompletionRequest] = []

    @property
    def cleaning_requests(self) -> List[CompletionRequest]:
        return [r for r in self.requests if r.system_prompt != SIGNALS_SYSTEM_PROMPT]

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        await asyncio.sleep(0)
        if request.system_prompt == SIGNALS_SYSTEM_PROMPT:
            return self.signals_fn(request.data)
        return self.clean_fn(request.data)

    def get_cost_estimate(self, tokens: int) -> float:
        return tokens / 100_000


class FakeNewsClient:
    """News search returning canned articles; names in `failing` raise."""

    def __init__(self, articles: Optional[Dict[str, List[Article]]] = None, failing=()):
        self.articles = articles or {}
        self.failing = set(failing)
        self.queries: List[str] = []

    async def search(self, company_name: str) -> List[Article]:
        self.queries.append(company_name)
        await asyncio.sleep(0)
        if company_name in self.failing:
            raise ConnectionError(f"news search unavailable for {company_name}")
        if company_name in self.articles:
            return self.articles[company_name]
        return [
            Article(
                title=f"{company_name} expands",
                content=f"{company_name} opens a new office.",
                url=f"https://news.example.com/{company_name.lower().replace(' ', '-')}",
                published_at="2026-09-01T00:00:00Z",
            )
        ]


class LookupRendezvous:
    """Holds every caller of `arrive()` until `parties` callers have arrived."""

    def __init__(self, parties: int):
        self.parties = parties
        self._arrived = 0
        self._all_arrived = asyncio.Event()

    async def arrive(self):
        if self.parties:
            self._arrived += 1
            if self._arrived >= self.parties:
                self._all_arrived.set()
            await self._all_arrived.wait()
        await asyncio.sleep(0)


class InMemoryCompanyStore(CompanyStore):
    """
    CompanyStore kept in a dict.

    `failing_names` makes inserts/updates for those names raise. With
    `rendezvous=n`, every lookup reads the dict and then waits until n lookups
    have happened, so concurrent upserts all see the state before any write.
    """

    def __init__(self, failing_names=(), rendezvous: int = 0):
        self.companies: Dict[str, Company] = {}
        self.failing_names = set(failing_names)
        self._rendezvous = LookupRendezvous(rendezvous)

    async def find_by_id(self, company_id: str) -> Optional[Company]:
        return self.companies.get(company_id)

    async def find_by_domain(self, domain: str) -> Optional[Company]:
        found = next((c for c in self.companies.values() if c.domain == domain), None)
        await self._rendezvous.arrive()
        return found

    async def find_by_name(self, name: str) -> Optional[Company]:
        found = next((c for c in self.companies.values() if c.name == name), None)
        await self._rendezvous.arrive()
        return found

    def _check(self, record: CleanedRecord):
        if record.name in self.failing_names:
            raise RuntimeError(f"write rejected for {record.name}")

    async def insert(self, record: CleanedRecord) -> Company:
        self._check(record)
        company = Company(
            id=str(uuid.uuid4()),
            name=record.name,
            domain=record.domain,
            country=record.country,
            employee_size=record.employee_size,
            raw_json=record.raw_json,
            created_at=datetime.now(timezone.utc),
        )
        self.companies[company.id] = company
        return company

    async def replace_fields(self, company_id: str, record: CleanedRecord) -> Company:
        self._check(record)
        company = self.companies.get(company_id)
        if company is None:
            raise NotFoundError(f"Company with id {company_id} not found")
        company.name = record.name
        company.domain = record.domain
        company.country = record.country
        company.employee_size = record.employee_size
        company.raw_json = record.raw_json
        company.updated_at = datetime.now(timezone.utc)
        return company

    async def update_enrichment(self, company_id: str, result: EnrichmentResult) -> Company:
        company = self.companies.get(company_id)
        if company is None:
            raise NotFoundError(f"Company with id {company_id} not found")
        company.enrichment_data = result
        company.enriched_at = result.enriched_at
        return company

    async def delete_all(self) -> int:
        count = len(self.companies)
        self.companies.clear()
        return count

    def _matching(self, filters: CompanyFilters) -> List[Company]:
        matches = []
        for company in self.companies.values():
            if filters.country and filters.country.lower() not in (company.country or "").lower():
                continue
            if filters.employee_size and company.employee_size != filters.employee_size:
                continue
            if filters.domain and filters.domain.lower() not in (company.domain or "").lower():
                continue
            matches.append(company)
        return matches

    async def list_filtered(self, filters: CompanyFilters) -> List[Company]:
        matches = self._matching(filters)
        return matches[filters.offset:filters.offset + filters.limit]

    async def count_filtered(self, filters: CompanyFilters) -> int:
        return len(self._matching(filters))

    async def list_countries(self) -> List[str]:
        return sorted({c.country for c in self.companies.values() if c.country})

    async def list_employee_sizes(self) -> List[str]:
        return sorted({c.employee_size for c in self.companies.values()})


@pytest.fixture
def ai_model() -> FakeAIModel:
    return FakeAIModel()


@pytest.fixture
def news_client() -> FakeNewsClient:
    return FakeNewsClient()


@pytest.fixture
def memory_store() -> InMemoryCompanyStore:
    return InMemoryCompanyStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine, session_maker = create_engine_and_sessionmaker(
        f"sqlite+aiosqlite:///{tmp_path / 'companies.db'}"
    )
    await init_models(engine)
    yield SQLCompanyStore(session_maker)
    await engine.dispose()


def cleaned(name: str, domain: Optional[str] = None, country: str = "United States",
            employee_size: str = "51-200") -> CleanedRecord:
    return CleanedRecord(
        name=name,
        domain=domain,
        country=country,
        employee_size=employee_size,
        raw_json={"name": name, "domain": domain or ""},
    )
