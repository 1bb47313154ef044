"""
HTTP API over the company store and the upload pipeline.

Run with `uvicorn company_pipeline.api:app`.
"""
import math
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from loguru import logger

from company_pipeline.errors import EnrichmentError, NotFoundError
from company_pipeline.models import CompanyFilters
from company_pipeline.services import Services, build_services
from company_pipeline.utils.logging import configure_logging


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        services: Pre-built services (tests). When omitted, production services are
            built on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            app.state.services = services
            yield
            return

        configure_logging()
        app.state.services = await build_services()
        try:
            yield
        finally:
            await app.state.services.close()

    app = FastAPI(
        title="Company Pipeline API",
        description="CSV ingestion, AI cleaning and news enrichment of company records",
        version="0.1.0",
        lifespan=lifespan,
    )

    def get_services(request: Request) -> Services:
        return request.app.state.services

    @app.get("/api/companies")
    async def list_companies(
        request: Request,
        country: Optional[str] = None,
        employee_size: Optional[str] = None,
        domain: Optional[str] = None,
        limit: int = Query(50),
        offset: int = Query(0),
    ):
        try:
            filters = CompanyFilters(
                country=country or None,
                employee_size=employee_size or None,
                domain=domain or None,
                limit=limit,
                offset=offset,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        store = get_services(request).store
        companies = await store.list_filtered(filters)
        total = await store.count_filtered(filters)
        return {
            "companies": [company.to_dict() for company in companies],
            "total": total,
            "page": filters.offset // filters.limit + 1,
            "pageSize": filters.limit,
            "totalPages": math.ceil(total / filters.limit),
        }

    @app.delete("/api/companies")
    async def delete_companies(request: Request):
        deleted = await get_services(request).store.delete_all()
        return {"success": True, "deleted": deleted}

    @app.post("/api/companies/{company_id}/enrich")
    async def enrich_company(company_id: str, request: Request):
        services = get_services(request)
        company = await services.store.find_by_id(company_id)
        if company is None:
            raise HTTPException(status_code=404, detail="Company not found")

        logger.info(f"🔍 Starting enrichment for company: {company.name}")
        try:
            enrichment = await services.enrichment_service.enrich_company(company)
        except EnrichmentError as e:
            return JSONResponse(status_code=502, content={"success": False, "error": str(e)})

        try:
            updated = await services.store.update_enrichment(company_id, enrichment)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Company not found")
        logger.info(
            f"✅ Enrichment completed for {company.name} "
            f"with confidence score: {enrichment.confidence_score}%"
        )
        return {
            "success": True,
            "company": updated.to_dict(),
            "enrichment": enrichment.to_dict(),
        }

    @app.post("/api/upload", status_code=202)
    async def upload_csv(
        request: Request,
        file: Optional[UploadFile] = File(None),
        enableEnrichment: str = Form("false"),
    ):
        if file is None:
            raise HTTPException(status_code=400, detail="No file provided")
        if not (file.filename or "").lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail="File must be a CSV")

        content = await file.read()
        try:
            csv_text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")

        job_id = await get_services(request).jobs.submit(
            csv_text, enable_enrichment=enableEnrichment.lower() == "true"
        )
        return {"jobId": job_id}

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str, request: Request):
        job = get_services(request).jobs.get_status(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_dict()

    @app.get("/api/countries")
    async def list_countries(request: Request):
        return await get_services(request).store.list_countries()

    @app.get("/api/employee-sizes")
    async def list_employee_sizes(request: Request):
        return await get_services(request).store.list_employee_sizes()

    return app


app = create_app()
