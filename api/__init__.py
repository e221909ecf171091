"""HTTP API for Competitor Lemonade (FastAPI)."""
