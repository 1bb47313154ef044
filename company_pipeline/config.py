# company_pipeline/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
NEWS_API_KEY = os.getenv("NEWS_API_KEY")

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///companies.db")

# AI model
AI_PROVIDER = os.getenv("AI_PROVIDER", "openai")
AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.1"))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", "1000"))

# Runtime parameters
BATCH_SIZE = 5
BATCH_DELAY = 1.0  # seconds between cleaning batches
CLEANING_CONCURRENCY = int(os.getenv("CLEANING_CONCURRENCY", "10"))
CONCURRENCY = 100  # requests per second allowed by the API clients
JOB_CONCURRENCY = 2
JOB_KEEP_COMPLETED = int(os.getenv("JOB_KEEP_COMPLETED", "10"))  # finished jobs kept for status polling
JOB_KEEP_FAILED = int(os.getenv("JOB_KEEP_FAILED", "50"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENABLE_ENRICHMENT = os.getenv("ENABLE_ENRICHMENT", "false").lower() == "true"

# URLs
NEWS_URL = "https://newsapi.org/v2/everything"
NEWS_PAGE_SIZE = 100

# File names
INPUT_CSV = os.getenv("INPUT_CSV", "companies.csv")
OUTPUT_CSV = os.getenv("OUTPUT_CSV", "companies_cleaned.csv")
