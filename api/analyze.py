"""
Analysis API

Endpoints:
- POST /api/analyze - Run a competitor analysis and store the report
- GET /api/usage - Queries used today and the plan limit
- POST /api/competitors/suggestions - Suggest more competitors for a company
- GET /api/sentiment/{query} - Social sentiment for a company
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from lemonade.analysis import SocialSentimentAnalyzer, SuggestionAnalyzer
from lemonade.auth.dependencies import get_identity
from lemonade.auth.identity import Identity
from lemonade.database.session import get_db
from lemonade.pipeline import AnalysisPipeline, AnalysisRequest
from lemonade.quota import QuotaService, next_reset_time
from lemonade.signals import SignalSources, split_competitors

from api.dependencies import get_pipeline, get_sentiment_analyzer, get_suggestion_analyzer

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Analysis"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SourcesRequest(BaseModel):
    """Signal source toggles."""
    news: bool = True
    funding: bool = True
    social: bool = True
    products: bool = False


class AnalyzeRequest(BaseModel):
    """
    Request to analyze competitors.

    Either `competitors` (newline or comma separated) or `competitorList`.
    """
    competitors: Optional[str] = None
    competitorList: Optional[List[str]] = None
    sources: SourcesRequest = Field(default_factory=SourcesRequest)
    autoTrack: bool = False
    nocache: bool = False


class SuggestionsRequest(BaseModel):
    """Request for competitor suggestions."""
    competitor: str = Field(..., min_length=1, max_length=255)
    existing: List[str] = Field(default_factory=list)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/analyze")
async def analyze_competitors(
    request: AnalyzeRequest,
    identity: Identity = Depends(get_identity),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """
    Run the full analysis pipeline.

    Errors:
    - 400: no competitors, no sources, or more competitors than the plan allows
    - 429: query allowance used up
    - 502: the report could not be generated
    """
    names = split_competitors(request.competitors, request.competitorList)
    outcome = await pipeline.run(
        identity,
        AnalysisRequest(
            competitors=names,
            sources=SignalSources(**request.sources.model_dump()),
            auto_track=request.autoTrack,
            nocache=request.nocache,
        ),
    )
    return outcome.to_dict()


@router.get("/usage")
def get_usage(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Current usage without spending a query."""
    decision = QuotaService(db).usage(identity)
    return {
        "current": decision.current,
        "limit": decision.limit,
        "remaining": decision.remaining,
        "isLoggedIn": not identity.is_guest,
        "resetTime": None if identity.is_guest else next_reset_time().isoformat(),
    }


@router.post("/competitors/suggestions")
async def suggest_competitors(
    request: SuggestionsRequest,
    analyzer: SuggestionAnalyzer = Depends(get_suggestion_analyzer),
):
    """Scored suggestions for additional competitors."""
    analysis = await analyzer.discover(request.competitor.strip(), existing=request.existing)
    return analysis.to_dict()


@router.get("/sentiment/{query}")
async def get_social_sentiment(
    query: str,
    analyzer: SocialSentimentAnalyzer = Depends(get_sentiment_analyzer),
):
    """Social sentiment from community discussion; socialMedia is null without any."""
    result = await analyzer.analyze(query)
    if result is None:
        return {"query": query, "socialMedia": None}
    return result.to_dict()
