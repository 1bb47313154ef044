"""
Typed data models for the company ingestion pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from company_pipeline.errors import RowValidationError

EMPLOYEE_SIZE_BUCKETS: Tuple[str, ...] = (
    "1-10",
    "11-50",
    "51-200",
    "201-500",
    "501-1,000",
    "1,001-5,000",
    "5,001-10,000",
    "10,000+",
)

SIGNAL_CATEGORIES: Tuple[str, ...] = (
    "recent_news",
    "hiring_signals",
    "funding_events",
    "technology_adoption",
    "trigger_events",
    "growth_indicators",
    "leadership_changes",
)

RAW_FIELDS: Tuple[str, ...] = ("name", "domain", "country", "employee_size")

ProgressCallback = Callable[[int], None]


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class RawRecord:
    """Company row as read from the CSV. Unknown columns are kept in `extra`."""
    name: Optional[str] = None
    domain: Optional[str] = None
    country: Optional[str] = None
    employee_size: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, row: Any) -> "RawRecord":
        """
        Coerce a parsed CSV row into a RawRecord.

        Raises:
            RowValidationError: If the row is not a string-keyed mapping or a
                known field holds something other than a string.
        """
        if not isinstance(row, Mapping):
            raise RowValidationError(f"Expected a record, got {type(row).__name__}")

        known: Dict[str, Optional[str]] = {}
        extra: Dict[str, str] = {}
        for key, value in row.items():
            if not isinstance(key, str):
                raise RowValidationError(f"Invalid column name: {key!r}")
            if key in RAW_FIELDS:
                if value is not None and not isinstance(value, str):
                    raise RowValidationError(
                        f"Field '{key}' must be a string, got {type(value).__name__}"
                    )
                known[key] = value
            else:
                extra[key] = "" if value is None else str(value)
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, str]:
        data: Dict[str, str] = {}
        for key in RAW_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data.update(self.extra)
        return data


@dataclass
class RowError:
    """Diagnostic for a rejected row. row_index counts the header as row 1."""
    row_index: int
    data: Dict[str, Any]
    error: str


@dataclass
class ParseResult:
    rows: List[Dict[str, str]]
    warnings: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid: List[RawRecord] = field(default_factory=list)
    invalid: List[RowError] = field(default_factory=list)
    row_indices: List[int] = field(default_factory=list)  # CSV row number of each valid record


@dataclass
class CleanedRecord:
    """Company data after AI normalization."""
    name: str
    domain: Optional[str]
    country: str
    employee_size: str
    raw_json: Dict[str, str]


@dataclass
class CompanySignals:
    recent_news: List[str] = field(default_factory=list)
    hiring_signals: List[str] = field(default_factory=list)
    funding_events: List[str] = field(default_factory=list)
    technology_adoption: List[str] = field(default_factory=list)
    trigger_events: List[str] = field(default_factory=list)
    growth_indicators: List[str] = field(default_factory=list)
    leadership_changes: List[str] = field(default_factory=list)

    def total(self) -> int:
        return sum(len(getattr(self, name)) for name in SIGNAL_CATEGORIES)

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(getattr(self, name)) for name in SIGNAL_CATEGORIES}


@dataclass
class EnrichmentResult:
    signals: CompanySignals
    sources: List[str]
    confidence_score: int
    enriched_at: datetime
    cost: float = 0.0  # not persisted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signals": self.signals.to_dict(),
            "sources": list(self.sources),
            "confidence_score": self.confidence_score,
            "enriched_at": self.enriched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnrichmentResult":
        raw_signals = data.get("signals") or {}
        signals = CompanySignals(
            **{name: list(raw_signals.get(name) or []) for name in SIGNAL_CATEGORIES}
        )
        enriched_at = data.get("enriched_at")
        if isinstance(enriched_at, str):
            enriched_at = datetime.fromisoformat(enriched_at)
        return cls(
            signals=signals,
            sources=list(data.get("sources") or []),
            confidence_score=int(data.get("confidence_score", 0)),
            enriched_at=enriched_at,
        )


@dataclass
class Company:
    """Persisted company."""
    id: str
    name: str
    domain: Optional[str]
    country: Optional[str]
    employee_size: str
    raw_json: Dict[str, Any]
    enrichment_data: Optional[EnrichmentResult] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    enriched_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "country": self.country,
            "employee_size": self.employee_size,
            "raw_json": self.raw_json,
            "enrichment_data": self.enrichment_data.to_dict() if self.enrichment_data else None,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "enriched_at": _isoformat(self.enriched_at),
        }


@dataclass
class Article:
    """News article returned by the news search service."""
    title: str
    content: str
    url: str
    published_at: Optional[str] = None


@dataclass
class CompanyFilters:
    country: Optional[str] = None
    employee_size: Optional[str] = None
    domain: Optional[str] = None
    limit: int = 50
    offset: int = 0

    def __post_init__(self):
        if self.employee_size is not None and self.employee_size not in EMPLOYEE_SIZE_BUCKETS:
            raise ValueError(f"Unknown employee size bucket: {self.employee_size}")
        if not 1 <= self.limit <= 100:
            raise ValueError("limit must be between 1 and 100")
        if self.offset < 0:
            raise ValueError("offset must be >= 0")


@dataclass
class UploadResult:
    """Accumulated outcome of one upload run."""
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    enriched: int = 0
    enrichment_errors: int = 0
    enrichment_skipped: int = 0
    error_details: List[str] = field(default_factory=list)
    total_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "inserted": self.inserted,
            "updated": self.updated,
            "errors": self.errors,
            "enriched": self.enriched,
            "enrichmentErrors": self.enrichment_errors,
            "enrichmentSkipped": self.enrichment_skipped,
            "errorDetails": list(self.error_details),
            "totalCost": self.total_cost,
        }


@dataclass
class AIModelConfig:
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.1
    max_tokens: int = 1000
    api_key: Optional[str] = None


@dataclass
class CompletionRequest:
    system_prompt: str
    user_prompt: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionResponse:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None


@dataclass
class CleaningResponse:
    """Outcome of cleaning one row, with usage for cost accounting."""
    success: bool
    data: Optional[CleanedRecord] = None
    error: Optional[str] = None
    tokens_used: int = 0
    cost: float = 0.0
