import re
from typing import Any, List, Optional, Sequence

from company_pipeline.errors import RowValidationError
from company_pipeline.models import RawRecord, RowError, ValidationResult

DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]*\.[a-zA-Z]{2,}$")
_SCHEME_RE = re.compile(r"^https?://")


def is_valid_domain(domain: str) -> bool:
    """Simple hostname check; an http(s):// prefix is allowed and ignored."""
    return bool(DOMAIN_RE.match(_SCHEME_RE.sub("", domain)))


class CSVValidator:
    """Validates parsed rows against the RawRecord shape and business rules."""

    def validate(self, rows: Sequence[Any]) -> ValidationResult:
        """
        Partition rows into valid RawRecords and per-row diagnostics.
        Every input row ends up in exactly one of the two lists.
        """
        result = ValidationResult()
        for position, row in enumerate(rows):
            row_index = position + 2  # header is row 1
            try:
                record = RawRecord.from_mapping(row)
            except RowValidationError as e:
                data = dict(row) if isinstance(row, dict) else {"value": row}
                result.invalid.append(RowError(row_index=row_index, data=data, error=str(e)))
                continue
            result.valid.append(record)
            result.row_indices.append(row_index)
        return result

    def validate_business_rules(
        self,
        rows: Sequence[RawRecord],
        row_indices: Optional[Sequence[int]] = None,
    ) -> List[RowError]:
        """
        Check business rules on schema-valid rows.

        A row can fail more than one rule and then yields one RowError per rule.

        Args:
            rows: Schema-valid records.
            row_indices: CSV row numbers of `rows`; defaults to position + 2.
        """
        errors: List[RowError] = []
        for position, row in enumerate(rows):
            row_index = row_indices[position] if row_indices is not None else position + 2

            if not row.name and not row.domain:
                errors.append(RowError(
                    row_index=row_index,
                    data=row.to_dict(),
                    error="Company must have either a name or domain",
                ))

            if row.domain and not is_valid_domain(row.domain):
                errors.append(RowError(
                    row_index=row_index,
                    data=row.to_dict(),
                    error=f"Invalid domain format: {row.domain}",
                ))
        return errors
