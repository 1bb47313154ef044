"""
Company store: lookups, upsert and enrichment updates.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from company_pipeline.db.schema import CompanyRow, utcnow
from company_pipeline.errors import NotFoundError
from company_pipeline.models import CleanedRecord, Company, CompanyFilters, EnrichmentResult


class CompanyStore(ABC):
    """
    Persistence operations used by the pipeline and the listing API.

    `upsert` is implemented here on top of the lookups. It is not atomic:
    two concurrent upserts of the same domain/name can both miss the lookup
    and insert twice.
    """

    @abstractmethod
    async def find_by_id(self, company_id: str) -> Optional[Company]:
        ...

    @abstractmethod
    async def find_by_domain(self, domain: str) -> Optional[Company]:
        ...

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[Company]:
        ...

    @abstractmethod
    async def insert(self, record: CleanedRecord) -> Company:
        ...

    @abstractmethod
    async def replace_fields(self, company_id: str, record: CleanedRecord) -> Company:
        """Overwrite all cleaned fields of an existing company and bump updated_at."""

    @abstractmethod
    async def update_enrichment(self, company_id: str, result: EnrichmentResult) -> Company:
        """Attach an enrichment result. Raises NotFoundError for unknown ids."""

    @abstractmethod
    async def delete_all(self) -> int:
        ...

    @abstractmethod
    async def list_filtered(self, filters: CompanyFilters) -> List[Company]:
        ...

    @abstractmethod
    async def count_filtered(self, filters: CompanyFilters) -> int:
        """Count matches ignoring limit/offset."""

    @abstractmethod
    async def list_countries(self) -> List[str]:
        ...

    @abstractmethod
    async def list_employee_sizes(self) -> List[str]:
        ...

    async def upsert(self, record: CleanedRecord) -> Tuple[Company, bool]:
        """
        Insert or update a cleaned company, matching on domain first and then name.

        Returns:
            Tuple[Company, bool]: The stored company and whether it already existed.
        """
        existing = None
        if record.domain:
            existing = await self.find_by_domain(record.domain)
        if existing is None and record.name:
            existing = await self.find_by_name(record.name)

        if existing is not None:
            return await self.replace_fields(existing.id, record), True
        return await self.insert(record), False


def _to_company(row: CompanyRow) -> Company:
    return Company(
        id=row.id,
        name=row.name,
        domain=row.domain,
        country=row.country,
        employee_size=row.employee_size,
        raw_json=row.raw_json,
        enrichment_data=EnrichmentResult.from_dict(row.enrichment_data) if row.enrichment_data else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
        enriched_at=row.enriched_at,
    )


def _apply_filters(query, filters: CompanyFilters):
    if filters.country:
        query = query.where(CompanyRow.country.ilike(f"%{filters.country}%"))
    if filters.employee_size:
        query = query.where(CompanyRow.employee_size == filters.employee_size)
    if filters.domain:
        query = query.where(CompanyRow.domain.ilike(f"%{filters.domain}%"))
    return query


class SQLCompanyStore(CompanyStore):
    """CompanyStore over SQLAlchemy async sessions, one session per operation."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def find_by_id(self, company_id: str) -> Optional[Company]:
        async with self.session_maker() as session:
            row = await session.get(CompanyRow, company_id)
            return _to_company(row) if row else None

    async def find_by_domain(self, domain: str) -> Optional[Company]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(CompanyRow).where(CompanyRow.domain == domain).limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_company(row) if row else None

    async def find_by_name(self, name: str) -> Optional[Company]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(CompanyRow).where(CompanyRow.name == name).limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_company(row) if row else None

    async def insert(self, record: CleanedRecord) -> Company:
        async with self.session_maker() as session:
            row = CompanyRow(
                name=record.name,
                domain=record.domain,
                country=record.country,
                employee_size=record.employee_size,
                raw_json=record.raw_json,
                # Set explicitly so no attribute needs a lazy load after commit
                enrichment_data=None,
                updated_at=None,
                enriched_at=None,
            )
            session.add(row)
            await session.commit()
            return _to_company(row)

    async def replace_fields(self, company_id: str, record: CleanedRecord) -> Company:
        async with self.session_maker() as session:
            row = await session.get(CompanyRow, company_id)
            if row is None:
                raise NotFoundError(f"Company with id {company_id} not found")
            row.name = record.name
            row.domain = record.domain
            row.country = record.country
            row.employee_size = record.employee_size
            row.raw_json = record.raw_json
            row.updated_at = utcnow()
            await session.commit()
            return _to_company(row)

    async def update_enrichment(self, company_id: str, result: EnrichmentResult) -> Company:
        async with self.session_maker() as session:
            row = await session.get(CompanyRow, company_id)
            if row is None:
                raise NotFoundError(f"Company with id {company_id} not found")
            row.enrichment_data = result.to_dict()
            row.enriched_at = result.enriched_at
            row.updated_at = utcnow()
            await session.commit()
            return _to_company(row)

    async def delete_all(self) -> int:
        async with self.session_maker() as session:
            result = await session.execute(delete(CompanyRow))
            await session.commit()
            logger.info(f"🗑️ Deleted {result.rowcount} companies")
            return result.rowcount or 0

    async def list_filtered(self, filters: CompanyFilters) -> List[Company]:
        query = (
            _apply_filters(select(CompanyRow), filters)
            .order_by(CompanyRow.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        async with self.session_maker() as session:
            result = await session.execute(query)
            return [_to_company(row) for row in result.scalars().all()]

    async def count_filtered(self, filters: CompanyFilters) -> int:
        query = _apply_filters(select(func.count()).select_from(CompanyRow), filters)
        async with self.session_maker() as session:
            result = await session.execute(query)
            return result.scalar_one()

    async def list_countries(self) -> List[str]:
        query = (
            select(CompanyRow.country)
            .where(CompanyRow.country.is_not(None), CompanyRow.country != "")
            .distinct()
            .order_by(CompanyRow.country)
        )
        async with self.session_maker() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_employee_sizes(self) -> List[str]:
        query = select(CompanyRow.employee_size).distinct().order_by(CompanyRow.employee_size)
        async with self.session_maker() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
