import csv
from typing import Dict, List

from loguru import logger

from company_pipeline.errors import MalformedInputError
from company_pipeline.models import ParseResult

# Common header variations mapped to the canonical field names
HEADER_SYNONYMS: Dict[str, str] = {
    # Company name
    "company_name": "name",
    "company": "name",
    "company name": "name",
    # Domain
    "website": "domain",
    "url": "domain",
    "domain_name": "domain",
    # Employee size
    "employees": "employee_size",
    "size": "employee_size",
    "headcount": "employee_size",
    "employee_count": "employee_size",
    "company_size": "employee_size",
    "employee size": "employee_size",
    # Country
    "location": "country",
    "country_code": "country",
    "hq_country": "country",
}


def normalize_header(header: str) -> str:
    """Lower-case a header and map known synonyms to canonical names."""
    normalized = header.strip().strip('"').strip().lower()
    return HEADER_SYNONYMS.get(normalized, normalized)


def detect_delimiter(header_line: str) -> str:
    return "\t" if "\t" in header_line else ","


class CSVParser:
    """
    Turns CSV text into loosely-typed rows keyed by normalized header.

    Malformed data rows become warnings instead of errors; only input without
    a header and at least one data row is rejected.
    """

    def __init__(self, skip_empty_lines: bool = True, trim_fields: bool = True):
        self.skip_empty_lines = skip_empty_lines
        self.trim_fields = trim_fields

    def parse(self, text: str) -> ParseResult:
        """
        Parse CSV text.

        Args:
            text (str): Raw CSV content, comma or tab separated.

        Returns:
            ParseResult: Rows in file order plus any warnings.

        Raises:
            MalformedInputError: If there is no header or no data row.
        """
        warnings: List[str] = []
        lines = self._preprocess_lines(text)
        self._validate_structure(lines)

        delimiter = detect_delimiter(lines[0])
        headers = [normalize_header(h) for h in self._split_line(lines[0], delimiter)]

        rows: List[Dict[str, str]] = []
        for offset, line in enumerate(lines[1:]):
            row_number = offset + 2
            try:
                values = self._split_line(line, delimiter)
            except csv.Error as e:
                warnings.append(f"Row {row_number}: Failed to parse - {e}")
                continue

            if len(values) != len(headers):
                warnings.append(
                    f"Row {row_number}: Expected {len(headers)} columns, got {len(values)}"
                )
            rows.append({
                header: values[index] if index < len(values) else ""
                for index, header in enumerate(headers)
            })

        logger.debug(f"Parsed {len(rows)} rows with {len(warnings)} warnings")
        return ParseResult(rows=rows, warnings=warnings)

    def _preprocess_lines(self, text: str) -> List[str]:
        # Only \n and \r\n end a row; other Unicode line breaks stay inside fields
        lines = [line.rstrip("\r") for line in text.split("\n")]
        if lines and not lines[-1]:
            lines.pop()
        if self.skip_empty_lines:
            return [line for line in lines if line.strip()]
        return lines

    @staticmethod
    def _validate_structure(lines: List[str]) -> None:
        if not lines:
            raise MalformedInputError("CSV is empty")
        if len(lines) < 2:
            raise MalformedInputError("CSV must have at least a header and one data row")

    def _split_line(self, line: str, delimiter: str) -> List[str]:
        reader = csv.reader([line], delimiter=delimiter, skipinitialspace=self.trim_fields)
        fields = next(reader, [])
        return [self._clean_field(value) for value in fields]

    def _clean_field(self, value: str) -> str:
        return value.strip() if self.trim_fields else value
