"""AI model providers and the company data cleaner."""
from company_pipeline.ai.base import AIModel
from company_pipeline.ai.cleaning import CompanyDataCleaner
from company_pipeline.ai.factory import create_model

__all__ = ["AIModel", "CompanyDataCleaner", "create_model"]
