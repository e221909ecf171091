"""
LLM-backed analysis: report summarizer, fast preview, social sentiment and
competitor suggestions, all built on one structured-call helper.
"""

from .client import LLMClient, LLMResponse, LLMUnavailableError, TokenUsage
from .structured import structured_call, extract_json, StructuredOutputError
from .summarizer import ReportSummarizer, ReportGenerationError, count_signals
from .sentiment import SocialSentimentAnalyzer, SocialSentimentResult, keyword_sentiment
from .suggestions import SuggestionAnalyzer, SuggestionAnalysis, Suggestion, RawSuggestion

__all__ = [
    "LLMClient",
    "LLMResponse",
    "LLMUnavailableError",
    "TokenUsage",
    "structured_call",
    "extract_json",
    "StructuredOutputError",
    "ReportSummarizer",
    "ReportGenerationError",
    "count_signals",
    "SocialSentimentAnalyzer",
    "SocialSentimentResult",
    "keyword_sentiment",
    "SuggestionAnalyzer",
    "SuggestionAnalysis",
    "Suggestion",
    "RawSuggestion",
]
