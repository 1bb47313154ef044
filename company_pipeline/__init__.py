"""Company CSV ingestion, AI cleaning and news enrichment pipeline."""
