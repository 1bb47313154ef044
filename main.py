import asyncio
from pathlib import Path
from typing import List

import pandas as pd
from loguru import logger

from company_pipeline.config import ENABLE_ENRICHMENT, INPUT_CSV, LOG_LEVEL, OUTPUT_CSV
from company_pipeline.db.store import CompanyStore
from company_pipeline.models import Company, CompanyFilters
from company_pipeline.services import build_services
from company_pipeline.utils.logging import configure_logging

EXPORT_PAGE_SIZE = 100


async def load_all_companies(store: CompanyStore) -> List[Company]:
    """Page through the store and return every company, newest first."""
    companies: List[Company] = []
    offset = 0
    while True:
        page = await store.list_filtered(CompanyFilters(limit=EXPORT_PAGE_SIZE, offset=offset))
        companies.extend(page)
        if len(page) < EXPORT_PAGE_SIZE:
            return companies
        offset += EXPORT_PAGE_SIZE


def export_companies(companies: List[Company], output_path: str) -> None:
    """Write one row per company, with enrichment summary columns when present."""
    rows = []
    for company in companies:
        enrichment = company.enrichment_data
        rows.append({
            "name": company.name,
            "domain": company.domain,
            "country": company.country,
            "employee_size": company.employee_size,
            "confidence_score": enrichment.confidence_score if enrichment else None,
            "signal_count": enrichment.signals.total() if enrichment else None,
            "sources": ";".join(enrichment.sources) if enrichment else None,
            "enriched_at": company.enriched_at.isoformat() if company.enriched_at else None,
        })
    pd.DataFrame(rows).to_csv(output_path, index=False)


async def main():
    """
    Run the full upload pipeline over INPUT_CSV.

    - Cleans, stores and (optionally) enriches every company in the CSV.
    - Logs the upload summary.
    - Exports the stored companies to OUTPUT_CSV.
    """
    configure_logging(LOG_LEVEL)

    csv_text = Path(INPUT_CSV).read_text(encoding="utf-8-sig")
    services = await build_services()
    try:
        result = await services.orchestrator.process_csv(csv_text, enable_enrichment=ENABLE_ENRICHMENT)
        logger.info(f"📊 Upload summary: {result.to_dict()}")

        companies = await load_all_companies(services.store)
        export_companies(companies, OUTPUT_CSV)
        logger.info(f"💾 Exported {len(companies)} companies to {OUTPUT_CSV}")
    finally:
        # Cleanup: close client sessions to prevent unclosed connector warnings
        await services.close()

if __name__ == "__main__":
    asyncio.run(main())
