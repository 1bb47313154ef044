"""
Prompt text for the AI steps. Kept as plain templates so policies written
into them (such as the default size bucket) can be swapped without code changes.
"""
from company_pipeline.models import EMPLOYEE_SIZE_BUCKETS

_BUCKET_LIST = ", ".join(f'"{bucket}"' for bucket in EMPLOYEE_SIZE_BUCKETS)

CLEANING_SYSTEM_PROMPT = f"""You are a data cleaning specialist for company information.

OUTPUT FORMAT: Respond with valid JSON only:
{{
  "name": "cleaned company name",
  "domain": "cleaned domain or null",
  "country": "full English country name",
  "employee_size": "exact bucket from allowed list"
}}

EMPLOYEE SIZE BUCKETS (use exactly):
{_BUCKET_LIST}

RULES:
1. Clean company names (proper capitalization, remove suffixes like Inc/LLC/Ltd/GmbH)
2. Extract valid domains (no http://, www., paths). Return null if invalid
3. If the domain is missing, infer the company's main website from your general knowledge of the company
4. Convert country codes to full English names (us→United States, uk→United Kingdom, de→Germany)
5. If the country is missing, infer the headquarters country from your general knowledge of the company
6. Map employee info to the closest bucket; counts above 10,000 are "10,000+", counts below 1 are "1-10"
7. If the employee size is missing, infer it from your general knowledge of the company; for companies you do not know, use "1-10".
"""

CLEANING_USER_TEMPLATE = """Clean this company data:

{record}

Return only the cleaned JSON."""

SIGNALS_SYSTEM_PROMPT = (
    "You are a sales intelligence analyst extracting actionable insights from company news."
)

SIGNALS_USER_TEMPLATE = """Analyze this recent news about {name} and extract sales-relevant signals:

Company: {name}
Domain: {domain}
Country: {country}
Employee Size: {employee_size}

Recent News:
{news}

Extract actionable signals for sales outreach. Return JSON with these categories:

{{
  "recent_news": ["Key business updates that sales teams could reference"],
  "hiring_signals": ["Evidence of growth through hiring"],
  "funding_events": ["Investment rounds, acquisitions, IPOs"],
  "technology_adoption": ["New tech stack, platform migrations, tool adoption"],
  "trigger_events": ["Leadership changes, office moves, partnerships"],
  "growth_indicators": ["Revenue growth, market expansion, new products"],
  "leadership_changes": ["New executives, promotions, departures"]
}}

Focus on recent events (last 6 months) that would be relevant for personalized outreach.
Only include signals that are clearly supported by the news content.
If no relevant signals found for a category, use an empty array."""
