"""News-based company enrichment."""
from company_pipeline.enrichment.scoring import calculate_confidence_score
from company_pipeline.enrichment.service import CompanyEnrichmentService

__all__ = ["CompanyEnrichmentService", "calculate_confidence_score"]
