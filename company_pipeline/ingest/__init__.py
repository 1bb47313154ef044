"""CSV parsing and row validation."""
from company_pipeline.ingest.csv_parser import CSVParser
from company_pipeline.ingest.csv_validator import CSVValidator

__all__ = ["CSVParser", "CSVValidator"]
