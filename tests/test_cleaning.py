import json

import pytest

from company_pipeline.ai.cleaning import CompanyDataCleaner, is_valid_cleaned_data, normalize_domain
from company_pipeline.models import EMPLOYEE_SIZE_BUCKETS, CompletionResponse, RawRecord

from conftest import FakeAIModel


@pytest.mark.asyncio
async def test_clean_one_returns_cleaned_record_with_raw_back_reference(ai_model):
    raw = RawRecord(name="Apple Inc.", domain="https://www.apple.com/store", country="us",
                    employee_size="10001", extra={"industry": "Tech"})
    cleaned = await CompanyDataCleaner(ai_model).clean_one(raw)

    assert cleaned.name == "Apple"
    assert cleaned.domain == "apple.com"
    assert cleaned.country == "United States"
    assert cleaned.employee_size == "10,000+"
    assert cleaned.raw_json == raw.to_dict()


@pytest.mark.asyncio
async def test_prompt_contains_buckets_and_row_data(ai_model):
    raw = RawRecord(name="Acme", domain="acme.com", extra={"notes": "b2b"})
    await CompanyDataCleaner(ai_model).clean_one(raw)

    request = ai_model.requests[0]
    for bucket in EMPLOYEE_SIZE_BUCKETS:
        assert f'"{bucket}"' in request.system_prompt
    assert json.dumps(raw.to_dict(), indent=2) in request.user_prompt
    assert request.data == {"name": "Acme", "domain": "acme.com", "notes": "b2b"}


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, "", "   "])
async def test_rows_without_name_skip_the_model(ai_model, name):
    cleaner = CompanyDataCleaner(ai_model)

    assert await cleaner.clean_one(RawRecord(name=name, domain="acme.com")) is None
    assert ai_model.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [
    {"name": "", "domain": None, "country": "US", "employee_size": "1-10"},
    {"name": "Acme", "domain": 5, "country": "US", "employee_size": "1-10"},
    {"name": "Acme", "domain": None, "country": ["US"], "employee_size": "1-10"},
    {"name": "Acme", "domain": None, "country": "US", "employee_size": "10-20"},
    {"name": "Acme", "domain": None, "country": "US"},
    ["Acme"],
])
async def test_invalid_model_answers_are_failures(data):
    model = FakeAIModel(clean_fn=lambda _: CompletionResponse(success=True, data=data, cost=0.01))
    response = await CompanyDataCleaner(model).clean(RawRecord(name="Acme"))

    assert response.success is False
    assert response.error == "Invalid AI response format"
    assert response.cost == 0.01


@pytest.mark.asyncio
async def test_model_failure_is_reported_not_raised():
    model = FakeAIModel(clean_fn=lambda _: CompletionResponse(success=False, error="rate limited"))
    response = await CompanyDataCleaner(model).clean(RawRecord(name="Acme"))

    assert response.success is False
    assert response.error == "rate limited"


@pytest.mark.asyncio
async def test_model_exception_is_reported_not_raised():
    def boom(_):
        raise TimeoutError("model timed out")

    cleaner = CompanyDataCleaner(FakeAIModel(clean_fn=boom))

    assert await cleaner.clean_one(RawRecord(name="Acme")) is None
    response = await cleaner.clean(RawRecord(name="Acme"))
    assert response.error == "model timed out"


@pytest.mark.asyncio
async def test_clean_many_keeps_order_and_isolates_failures():
    def clean_fn(data):
        if data["name"] == "Bad":
            return CompletionResponse(success=False, error="nope")
        return CompletionResponse(
            success=True,
            data={"name": data["name"], "domain": None, "country": "Germany", "employee_size": "1-10"},
        )

    rows = [RawRecord(name=n) for n in ["A", "Bad", "C", "D", "Bad", "F", "G"]]
    results = await CompanyDataCleaner(FakeAIModel(clean_fn=clean_fn)).clean_many(
        rows, batch_size=3, batch_delay=0
    )

    assert [r.name if r else None for r in results] == ["A", None, "C", "D", None, "F", "G"]


def test_custom_system_prompt_is_used(ai_model):
    cleaner = CompanyDataCleaner(ai_model, system_prompt="Use bucket 11-50 by default.")

    assert cleaner.build_request(RawRecord(name="Acme")).system_prompt == "Use bucket 11-50 by default."


def test_model_info_and_cost(ai_model):
    cleaner = CompanyDataCleaner(ai_model)

    assert cleaner.model_info() == {"provider": "fake", "model": "fake-model"}
    assert cleaner.estimate_cost(1000) == pytest.approx(0.01)


@pytest.mark.parametrize("value,expected", [
    ("https://www.Acme.com/about?x=1", "acme.com"),
    ("acme.com", "acme.com"),
    ("", None),
    (None, None),
])
def test_normalize_domain(value, expected):
    assert normalize_domain(value) == expected


def test_every_bucket_is_accepted():
    for bucket in EMPLOYEE_SIZE_BUCKETS:
        assert is_valid_cleaned_data({"name": "A", "domain": None, "country": None, "employee_size": bucket})
