"""Clients for external API interactions."""
from company_pipeline.clients.news_client import NewsClient
from company_pipeline.clients.openai_client import OpenAIClient

__all__ = ["NewsClient", "OpenAIClient"]
