import asyncio
import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from company_pipeline.ai.cleaning import CompanyDataCleaner
from company_pipeline.api import create_app
from company_pipeline.enrichment.service import CompanyEnrichmentService
from company_pipeline.errors import NotFoundError
from company_pipeline.jobs import JobManager
from company_pipeline.services import Services
from company_pipeline.upload.orchestrator import UploadOrchestrator

from conftest import FakeAIModel, FakeNewsClient, InMemoryCompanyStore, cleaned

CSV_TEXT = "name,domain,country,employee_size\nAcme Inc.,acme.com,us,50\nGlobex,globex.com,uk,50\n"


def build_test_services(store, model, news_client):
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
    )


@pytest.fixture
def store():
    return InMemoryCompanyStore()


@pytest.fixture
def news():
    return FakeNewsClient(failing={"Broken News Co"})


@pytest.fixture
def client(store, news):
    app = create_app(build_test_services(store, FakeAIModel(), news))
    with TestClient(app) as test_client:
        yield test_client


def seed(store, *records):
    return [asyncio.run(store.insert(record)) for record in records]


def wait_for_job(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = client.get(f"/api/jobs/{job_id}").json()
        if status["state"] in ("completed", "failed"):
            return status
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} did not finish")


def test_list_companies_with_filters_and_pagination(client, store):
    seed(
        store,
        cleaned("Acme", "acme.com", country="United States"),
        cleaned("Globex", "globex.com", country="United Kingdom"),
        cleaned("Initech", "initech.io", country="Germany", employee_size="1-10"),
    )

    body = client.get("/api/companies", params={"country": "united", "limit": 1, "offset": 1}).json()
    assert body["total"] == 2
    assert body["page"] == 2
    assert body["pageSize"] == 1
    assert body["totalPages"] == 2
    assert len(body["companies"]) == 1

    body = client.get("/api/companies", params={"employee_size": "1-10"}).json()
    assert [c["name"] for c in body["companies"]] == ["Initech"]
    assert body["companies"][0]["enrichment_data"] is None


@pytest.mark.parametrize("params", [
    {"employee_size": "10-20"},
    {"limit": 0},
    {"limit": 500},
    {"offset": -5},
])
def test_list_companies_rejects_bad_filters(client, params):
    assert client.get("/api/companies", params=params).status_code == 422


def test_delete_companies(client, store):
    seed(store, cleaned("Acme", "acme.com"), cleaned("Globex", "globex.com"))

    assert client.delete("/api/companies").json() == {"success": True, "deleted": 2}
    assert client.get("/api/companies").json()["total"] == 0


def test_enrich_company(client, store):
    (company,) = seed(store, cleaned("Acme", "acme.com"))

    response = client.post(f"/api/companies/{company.id}/enrich")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["enrichment"]["confidence_score"] == 50
    assert body["company"]["enrichment_data"]["sources"] == ["https://news.example.com/acme"]
    assert store.companies[company.id].enrichment_data is not None


def test_enrich_unknown_company_is_404(client):
    assert client.post("/api/companies/does-not-exist/enrich").status_code == 404


def test_enrich_of_company_deleted_meanwhile_is_404(client, store):
    (company,) = seed(store, cleaned("Acme", "acme.com"))

    with patch.object(store, "update_enrichment", AsyncMock(side_effect=NotFoundError("gone"))):
        response = client.post(f"/api/companies/{company.id}/enrich")

    assert response.status_code == 404
    assert response.json()["detail"] == "Company not found"


def test_enrich_with_news_outage_is_502(client, store):
    (company,) = seed(store, cleaned("Broken News Co", "broken.com"))

    response = client.post(f"/api/companies/{company.id}/enrich")

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert "Failed to enrich company data" in response.json()["error"]
    assert store.companies[company.id].enrichment_data is None


def test_upload_runs_in_background_job(client, store, news):
    response = client.post(
        "/api/upload",
        files={"file": ("companies.csv", CSV_TEXT.encode("utf-8"), "text/csv")},
        data={"enableEnrichment": "true"},
    )

    assert response.status_code == 202
    status = wait_for_job(client, response.json()["jobId"])

    assert status["state"] == "completed"
    assert status["progress"] == 100
    assert status["enableEnrichment"] is True
    assert status["result"]["inserted"] == 2
    assert status["result"]["enriched"] == 2
    assert sorted(news.queries) == ["Acme", "Globex"]
    assert {c.name for c in store.companies.values()} == {"Acme", "Globex"}


def test_upload_of_malformed_csv_fails_the_job(client):
    response = client.post(
        "/api/upload",
        files={"file": ("companies.csv", b"name,domain\n", "text/csv")},
    )
    status = wait_for_job(client, response.json()["jobId"])

    assert status["state"] == "failed"
    assert "CSV processing failed" in status["failedReason"]


def test_upload_without_file_is_400(client):
    response = client.post("/api/upload", data={"enableEnrichment": "false"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No file provided"


def test_upload_of_non_csv_is_400(client):
    response = client.post("/api/upload", files={"file": ("companies.xlsx", b"x", "application/octet-stream")})

    assert response.status_code == 400
    assert response.json()["detail"] == "File must be a CSV"


def test_upload_of_non_utf8_is_400(client):
    response = client.post("/api/upload", files={"file": ("companies.csv", b"name\n\xff\xfe\xfa", "text/csv")})

    assert response.status_code == 400


def test_unknown_job_is_404(client):
    assert client.get("/api/jobs/not-a-job").status_code == 404


def test_countries_and_employee_sizes(client, store):
    seed(
        store,
        cleaned("Acme", "acme.com", country="Germany"),
        cleaned("Globex", "globex.com", country="France", employee_size="1-10"),
        cleaned("Hooli", "hooli.com", country=""),
    )

    assert client.get("/api/countries").json() == ["France", "Germany"]
    assert client.get("/api/employee-sizes").json() == ["1-10", "51-200"]


def test_employee_sizes_of_empty_store(client):
    assert client.get("/api/employee-sizes").json() == []
