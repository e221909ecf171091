"""
Service dependencies for the routers.

Each factory is a FastAPI dependency so tests can swap it through
app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from lemonade.analysis import LLMClient, ReportSummarizer, SocialSentimentAnalyzer, SuggestionAnalyzer
from lemonade.cache import get_signal_cache
from lemonade.database.session import get_db
from lemonade.delivery import EmailDelivery
from lemonade.pipeline import AnalysisPipeline
from lemonade.signals import SignalAggregator


@lru_cache()
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache()
def get_email_delivery() -> EmailDelivery:
    return EmailDelivery()


def get_aggregator() -> SignalAggregator:
    return SignalAggregator(cache=get_signal_cache())


def get_summarizer(client: LLMClient = Depends(get_llm_client)) -> ReportSummarizer:
    return ReportSummarizer(client)


def get_sentiment_analyzer(client: LLMClient = Depends(get_llm_client)) -> SocialSentimentAnalyzer:
    return SocialSentimentAnalyzer(client)


def get_suggestion_analyzer(client: LLMClient = Depends(get_llm_client)) -> SuggestionAnalyzer:
    return SuggestionAnalyzer(client)


def get_pipeline(
    db: Session = Depends(get_db),
    aggregator: SignalAggregator = Depends(get_aggregator),
    summarizer: ReportSummarizer = Depends(get_summarizer),
) -> AnalysisPipeline:
    return AnalysisPipeline(db, aggregator=aggregator, summarizer=summarizer)
