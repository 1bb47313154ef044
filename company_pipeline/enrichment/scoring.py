from company_pipeline.models import CompanySignals


def calculate_confidence_score(article_count: int, signals: CompanySignals) -> int:
    """
    Deterministic 0-100 confidence for an enrichment.

    Args:
        article_count (int): Number of news articles found.
        signals (CompanySignals): Extracted signals.

    Returns:
        int: min(articles*10, 30) + min(signals*5, 40), plus +20 for funding,
             +15 for leadership changes and +10 for hiring, capped at 100.
    """
    score = min(article_count * 10, 30)
    score += min(signals.total() * 5, 40)

    if signals.funding_events:
        score += 20
    if signals.leadership_changes:
        score += 15
    if signals.hiring_signals:
        score += 10

    return min(score, 100)
