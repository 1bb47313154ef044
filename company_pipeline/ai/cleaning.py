import asyncio
import json
import re
from typing import Any, Dict, List, Optional

from loguru import logger

from company_pipeline.ai.base import AIModel
from company_pipeline.ai.prompts import CLEANING_SYSTEM_PROMPT, CLEANING_USER_TEMPLATE
from company_pipeline.config import BATCH_DELAY, BATCH_SIZE
from company_pipeline.models import (
    EMPLOYEE_SIZE_BUCKETS,
    CleanedRecord,
    CleaningResponse,
    CompletionRequest,
    RawRecord,
)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_domain(domain: Optional[str]) -> Optional[str]:
    """Strip scheme, `www.` and any path from a domain. Empty input gives None."""
    if not domain:
        return None
    value = _SCHEME_RE.sub("", domain.strip()).split("/", 1)[0].split("?", 1)[0].lower()
    if value.startswith("www."):
        value = value[4:]
    return value or None


def is_valid_cleaned_data(data: Any) -> bool:
    """Check the shape the model must answer with."""
    if not isinstance(data, dict):
        return False
    name = data.get("name")
    domain = data.get("domain")
    country = data.get("country")
    return (
        isinstance(name, str)
        and len(name.strip()) > 0
        and (domain is None or isinstance(domain, str))
        and (country is None or isinstance(country, str))
        and data.get("employee_size") in EMPLOYEE_SIZE_BUCKETS
    )


class CompanyDataCleaner:
    """
    Normalizes raw CSV rows into CleanedRecords with the AI model.

    Every failure (model error, invalid JSON shape, unexpected exception) is
    reported as an unsuccessful CleaningResponse; nothing is raised to the caller.
    """

    def __init__(self, model: AIModel, system_prompt: str = CLEANING_SYSTEM_PROMPT):
        self.model = model
        self.system_prompt = system_prompt

    def build_request(self, raw: RawRecord) -> CompletionRequest:
        data = raw.to_dict()
        return CompletionRequest(
            system_prompt=self.system_prompt,
            user_prompt=CLEANING_USER_TEMPLATE.format(record=json.dumps(data, indent=2)),
            data=data,
        )

    async def clean(self, raw: RawRecord) -> CleaningResponse:
        """
        Clean one row.

        Args:
            raw (RawRecord): Validated row.

        Returns:
            CleaningResponse: `data` is set only when `success` is True.
        """
        if not (raw.name or "").strip():
            return CleaningResponse(success=False, error="Missing company name")

        try:
            response = await self.model.complete(self.build_request(raw))
        except Exception as e:
            logger.warning(f"⚠️ AI cleaning error for '{raw.name}': {e}")
            return CleaningResponse(success=False, error=str(e) or type(e).__name__)

        tokens = response.tokens_used or 0
        cost = response.cost or 0.0

        if not response.success or response.data is None:
            logger.warning(f"⚠️ AI cleaning failed for '{raw.name}': {response.error}")
            return CleaningResponse(
                success=False,
                error=response.error or "No data returned",
                tokens_used=tokens,
                cost=cost,
            )

        if not is_valid_cleaned_data(response.data):
            logger.warning(f"⚠️ Invalid AI response format for '{raw.name}': {response.data}")
            return CleaningResponse(
                success=False,
                error="Invalid AI response format",
                tokens_used=tokens,
                cost=cost,
            )

        data: Dict[str, Any] = response.data
        cleaned = CleanedRecord(
            name=data["name"].strip(),
            domain=normalize_domain(data.get("domain")),
            country=(data.get("country") or "").strip(),
            employee_size=data["employee_size"],
            raw_json=raw.to_dict(),
        )
        return CleaningResponse(success=True, data=cleaned, tokens_used=tokens, cost=cost)

    async def clean_one(self, raw: RawRecord) -> Optional[CleanedRecord]:
        """Clean one row; None on any failure."""
        response = await self.clean(raw)
        return response.data if response.success else None

    async def clean_many(
        self,
        rows: List[RawRecord],
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY,
    ) -> List[Optional[CleanedRecord]]:
        """
        Clean rows in concurrent groups of `batch_size`, pausing `batch_delay`
        seconds between groups. Output order matches `rows`.
        """
        results: List[Optional[CleanedRecord]] = []
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            results.extend(await asyncio.gather(*[self.clean_one(row) for row in batch]))
            if batch_delay and start + batch_size < len(rows):
                await asyncio.sleep(batch_delay)
        return results

    def model_info(self) -> Dict[str, str]:
        return {"provider": self.model.provider, "model": self.model.model}

    def estimate_cost(self, tokens: int) -> float:
        return self.model.get_cost_estimate(tokens)
