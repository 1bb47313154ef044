"""
Explicit wiring of the pipeline's collaborators.

`build_services()` constructs every long-lived object once; whoever calls it
(the batch script or the API lifespan) owns the result and must `close()` it.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from company_pipeline.ai.base import AIModel
from company_pipeline.ai.cleaning import CompanyDataCleaner
from company_pipeline.ai.factory import create_model
from company_pipeline.clients import NewsClient, OpenAIClient
from company_pipeline.config import DATABASE_URL
from company_pipeline.db.session import create_engine_and_sessionmaker, init_models
from company_pipeline.db.store import CompanyStore, SQLCompanyStore
from company_pipeline.enrichment.service import CompanyEnrichmentService
from company_pipeline.jobs import JobManager
from company_pipeline.models import AIModelConfig
from company_pipeline.upload.orchestrator import UploadOrchestrator


@dataclass
class Services:
    store: CompanyStore
    model: AIModel
    enrichment_service: CompanyEnrichmentService
    orchestrator: UploadOrchestrator
    jobs: JobManager
    news_client: Optional[NewsClient] = None
    openai_client: Optional[OpenAIClient] = None
    engine: Optional[AsyncEngine] = None

    async def close(self) -> None:
        await self.jobs.close()
        if self.news_client is not None:
            await self.news_client.close()
        if self.openai_client is not None:
            await self.openai_client.close()
        if self.engine is not None:
            await self.engine.dispose()


async def build_services(
    database_url: Optional[str] = None,
    model_config: Optional[AIModelConfig] = None,
) -> Services:
    """Build the production service graph and create missing tables."""
    engine, session_maker = create_engine_and_sessionmaker(database_url or DATABASE_URL)
    await init_models(engine)
    store = SQLCompanyStore(session_maker)

    openai_client = OpenAIClient(api_key=model_config.api_key if model_config else None)
    model = create_model(model_config, client=openai_client)
    news_client = NewsClient()

    enrichment_service = CompanyEnrichmentService(model, news_client)
    orchestrator = UploadOrchestrator(
        cleaner=CompanyDataCleaner(model),
        store=store,
        enrichment_service=enrichment_service,
    )
    return Services(
        store=store,
        model=model,
        enrichment_service=enrichment_service,
        orchestrator=orchestrator,
        jobs=JobManager(orchestrator),
        news_client=news_client,
        openai_client=openai_client,
        engine=engine,
    )
