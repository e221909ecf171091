"""
Competitor Lemonade

Competitive-intelligence reports from public signals:
1. Fetches news, funding, and community signals per competitor
2. Deduplicates and classifies them
3. Summarizes them into a structured report with an LLM
4. Enforces daily usage quotas and keeps report history
"""

__version__ = "0.4.0"
