# company_pipeline/upload/orchestrator.py

import asyncio
from typing import List, Optional, Tuple

from loguru import logger

from company_pipeline.ai.cleaning import CompanyDataCleaner
from company_pipeline.config import CLEANING_CONCURRENCY
from company_pipeline.db.store import CompanyStore
from company_pipeline.enrichment.service import CompanyEnrichmentService
from company_pipeline.errors import MalformedInputError, ProcessingError
from company_pipeline.ingest.csv_parser import CSVParser
from company_pipeline.ingest.csv_validator import CSVValidator
from company_pipeline.models import (
    CleanedRecord,
    CleaningResponse,
    Company,
    EnrichmentResult,
    ParseResult,
    ProgressCallback,
    RawRecord,
    UploadResult,
)


def _report(progress: Optional[ProgressCallback], value: int) -> None:
    if progress is not None:
        progress(value)


class UploadOrchestrator:
    """
    Drives one CSV upload through parse → validate → clean → upsert → enrich.

    Phases run strictly in order. Inside the cleaning and enrichment phases,
    items run concurrently and each item's failure is recorded on the
    UploadResult without affecting its siblings. Only a malformed CSV, zero
    valid rows, or every row failing cleaning aborts the run.
    """

    def __init__(
        self,
        cleaner: CompanyDataCleaner,
        store: CompanyStore,
        enrichment_service: Optional[CompanyEnrichmentService] = None,
        parser: Optional[CSVParser] = None,
        validator: Optional[CSVValidator] = None,
        cleaning_concurrency: int = CLEANING_CONCURRENCY,
    ):
        self.cleaner = cleaner
        self.store = store
        self.enrichment_service = enrichment_service
        self.parser = parser or CSVParser()
        self.validator = validator or CSVValidator()
        self.cleaning_concurrency = cleaning_concurrency

    async def process_csv(
        self,
        csv_text: str,
        enable_enrichment: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """
        Process a CSV upload end to end.

        Args:
            csv_text (str): Raw CSV content.
            enable_enrichment (bool): Run news enrichment on saved companies.
            progress: Optional callback receiving 0-100 progress values.

        Returns:
            UploadResult: Counters and ordered error details for the run.

        Raises:
            ProcessingError: On a malformed CSV, when no row survives
                validation, or when every row fails cleaning.
        """
        if enable_enrichment and self.enrichment_service is None:
            raise ValueError("Enrichment requested but no enrichment service is configured")

        result = UploadResult()
        logger.info("ℹ️ Starting CSV processing...")
        _report(progress, 10)

        # 1) Parse
        try:
            parsed = self.parser.parse(csv_text)
        except MalformedInputError as e:
            logger.error(f"💥 CSV processing failed: {e}")
            raise ProcessingError(f"CSV processing failed: {e}") from e

        result.processed = len(parsed.rows)
        logger.info(f"ℹ️ Parsed {result.processed} rows from CSV")
        if parsed.warnings:
            logger.warning(f"⚠️ CSV parsing warnings: {parsed.warnings}")
            result.error_details.extend(parsed.warnings)

        # 2) Validate
        rows, row_indices = self._validate(parsed, result)
        if not rows:
            raise ProcessingError("CSV processing failed: No valid data rows found after validation")
        _report(progress, 30)

        # 3) AI cleaning
        cleaned = await self._clean_rows(rows, row_indices, result)
        if not cleaned:
            logger.error("❌ AI cleaning completely failed for all rows")
            raise ProcessingError("CSV processing failed: AI cleaning failed for all companies")

        # 4) Persist
        saved = await self._save_companies(cleaned, result)
        _report(progress, 70)

        # 5) Enrichment
        if enable_enrichment and saved:
            await self._enrich_companies(saved, result)
        elif not enable_enrichment:
            result.enrichment_skipped = len(saved)
            logger.info(f"ℹ️ Enrichment skipped for {len(saved)} companies (feature disabled)")

        _report(progress, 100)
        logger.info(
            f"📊 Final results: processed={result.processed} inserted={result.inserted} "
            f"updated={result.updated} errors={result.errors} enriched={result.enriched} "
            f"enrichment_errors={result.enrichment_errors}"
        )
        if result.error_details:
            logger.debug(f"❌ Error details: {result.error_details}")
        return result

    def _validate(
        self, parsed: ParseResult, result: UploadResult
    ) -> Tuple[List[RawRecord], List[int]]:
        """Run shape and business-rule validation; returns surviving rows and their CSV row numbers."""
        validation = self.validator.validate(parsed.rows)
        rule_errors = self.validator.validate_business_rules(validation.valid, validation.row_indices)

        failed_rows = set()
        for error in validation.invalid + rule_errors:
            failed_rows.add(error.row_index)
            result.error_details.append(f"Row {error.row_index}: {error.error}")
        result.errors += len(failed_rows)

        rows: List[RawRecord] = []
        row_indices: List[int] = []
        for record, row_index in zip(validation.valid, validation.row_indices):
            if row_index not in failed_rows:
                rows.append(record)
                row_indices.append(row_index)

        logger.info(f"✅ {len(rows)} rows passed validation, ❌ {len(failed_rows)} rows failed")
        return rows, row_indices

    async def _clean_rows(
        self, rows: List[RawRecord], row_indices: List[int], result: UploadResult
    ) -> List[Tuple[int, CleanedRecord]]:
        logger.info(f"🤖 Starting AI cleaning for {len(rows)} validated rows...")
        semaphore = asyncio.Semaphore(self.cleaning_concurrency)

        async def clean_row(raw: RawRecord) -> CleaningResponse:
            async with semaphore:
                return await self.cleaner.clean(raw)

        outcomes = await asyncio.gather(*[clean_row(raw) for raw in rows], return_exceptions=True)

        cleaned: List[Tuple[int, CleanedRecord]] = []
        for row_index, outcome in zip(row_indices, outcomes):
            if isinstance(outcome, BaseException):
                reason = str(outcome) or type(outcome).__name__
            else:
                result.total_cost += outcome.cost
                if outcome.success and outcome.data is not None:
                    cleaned.append((row_index, outcome.data))
                    continue
                reason = outcome.error or "Unknown cleaning error"

            result.errors += 1
            result.error_details.append(f"Row {row_index}: AI cleaning failed - {reason}")
            logger.warning(f"❌ AI cleaning failed for row {row_index}: {reason}")

        logger.info(
            f"🧹 AI cleaning completed: {len(cleaned)} succeeded, {len(rows) - len(cleaned)} failed"
        )
        return cleaned

    async def _save_companies(
        self, cleaned: List[Tuple[int, CleanedRecord]], result: UploadResult
    ) -> List[Company]:
        logger.info(f"ℹ️ Saving {len(cleaned)} companies to database...")
        saved: List[Company] = []
        for row_index, record in cleaned:
            try:
                company, was_updated = await self.store.upsert(record)
            except Exception as e:
                result.errors += 1
                result.error_details.append(f"Row {row_index}: Database error - {e}")
                logger.error(f"❌ Database error for {record.name}: {e}")
                continue

            if was_updated:
                result.updated += 1
                logger.debug(f"✅ Updated existing company: {record.name}")
            else:
                result.inserted += 1
                logger.debug(f"✅ Inserted new company: {record.name}")
            saved.append(company)
        return saved

    async def _enrich_companies(self, companies: List[Company], result: UploadResult) -> None:
        logger.info(f"🚀 Starting parallel enrichment for {len(companies)} companies...")

        async def enrich_one(company: Company) -> EnrichmentResult:
            enrichment = await self.enrichment_service.enrich_company(company)
            await self.store.update_enrichment(company.id, enrichment)
            return enrichment

        outcomes = await asyncio.gather(
            *[enrich_one(company) for company in companies], return_exceptions=True
        )

        for company, outcome in zip(companies, outcomes):
            if isinstance(outcome, BaseException):
                result.enrichment_errors += 1
                result.error_details.append(f"Enrichment failed for {company.name}: {outcome}")
                logger.warning(f"⚠️ Enrichment failed for {company.name}: {outcome}")
            else:
                result.enriched += 1
                result.total_cost += outcome.cost
                logger.debug(f"✅ Enriched {company.name} (confidence: {outcome.confidence_score}%)")

        logger.info(
            f"✅ Parallel enrichment completed: {result.enriched} succeeded, "
            f"{result.enrichment_errors} failed"
        )
