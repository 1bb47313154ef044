"""CSV upload pipeline."""
from company_pipeline.upload.orchestrator import UploadOrchestrator

__all__ = ["UploadOrchestrator"]
