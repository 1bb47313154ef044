"""Company persistence."""
from company_pipeline.db.session import create_engine_and_sessionmaker, init_models
from company_pipeline.db.store import CompanyStore, SQLCompanyStore

__all__ = ["CompanyStore", "SQLCompanyStore", "create_engine_and_sessionmaker", "init_models"]
