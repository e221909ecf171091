"""
Analysis Tests

Structured LLM helper, report summarizer, social sentiment and competitor
suggestions. The LLM is always a mock; `None` stands for "no API key".
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from lemonade.analysis.client import LLMClient, LLMUnavailableError
from lemonade.analysis.sentiment import SocialSentimentAnalyzer, keyword_sentiment
from lemonade.analysis.structured import StructuredOutputError, extract_json, structured_call
from lemonade.analysis.suggestions import RawSuggestion, SuggestionAnalyzer
from lemonade.analysis.summarizer import ReportGenerationError, ReportSummarizer
from lemonade.signals.hackernews import HackerNewsSource
from lemonade.signals.models import CompetitorSignal, SignalItem

from conftest import CANNED_REPORT, llm_response


@pytest.fixture
def signals(acme_items):
    return [CompetitorSignal(source="Aggregated Sources", competitor="Acme", items=acme_items)]


# =============================================================================
# STRUCTURED CALLS
# =============================================================================

class TestExtractJson:
    """Tests for JSON extraction from model output."""

    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"a": [1, 2]}\n```\nThanks'
        assert extract_json(text) == {"a": [1, 2]}

    def test_invalid(self):
        with pytest.raises(StructuredOutputError):
            extract_json("The competitors are doing well.")

    def test_empty(self):
        with pytest.raises(StructuredOutputError, match="Empty"):
            extract_json("   ")


class TestStructuredCall:
    """Tests for the parse-or-fail policy."""

    @pytest.mark.asyncio
    async def test_returns_parsed_object(self, make_llm):
        client = make_llm('{"sentiment": "positive"}')
        data = await structured_call(client, "prompt", name="t", tier="fast", required_keys=("sentiment",))

        assert data == {"sentiment": "positive"}
        assert client.complete.await_args.kwargs["tier"] == "fast"

    @pytest.mark.asyncio
    async def test_missing_keys_raise(self, make_llm):
        with pytest.raises(StructuredOutputError, match="missing keys"):
            await structured_call(make_llm('{"other": 1}'), "prompt", name="t", required_keys=("sentiment",))

    @pytest.mark.asyncio
    async def test_failed_response_raises(self, make_llm):
        with pytest.raises(StructuredOutputError):
            await structured_call(make_llm("", success=False), "prompt", name="t")

    @pytest.mark.asyncio
    async def test_no_client_raises(self):
        with pytest.raises(StructuredOutputError):
            await structured_call(None, "prompt", name="t")

    @pytest.mark.asyncio
    async def test_fallback_returned(self, make_llm):
        assert await structured_call(make_llm("nope"), "prompt", name="t", fallback=None) is None
        assert await structured_call(None, "prompt", name="t", fallback={"x": 1}) == {"x": 1}


class TestLLMClient:
    """Tests for the Claude client wrapper."""

    def test_no_key_is_unavailable(self):
        client = LLMClient(api_key="")
        assert not client.available

    @pytest.mark.asyncio
    async def test_complete_without_key_raises(self):
        with pytest.raises(LLMUnavailableError):
            await LLMClient(api_key="").complete("hello")

    def test_model_tiers(self):
        client = LLMClient(api_key="")
        assert client.model_for("fast") != client.model_for("premium")
        with pytest.raises(ValueError):
            client.model_for("turbo")


# =============================================================================
# REPORT SUMMARIZER
# =============================================================================

class TestReportSummarizer:
    """Tests for the main report and the fast preview."""

    @pytest.mark.asyncio
    async def test_valid_report_serialized(self, canned_llm, signals):
        summary = await ReportSummarizer(canned_llm).summarize(signals, ["Acme"])

        assert json.loads(summary) == CANNED_REPORT
        assert canned_llm.complete.await_args.kwargs["tier"] == "standard"
        prompt = canned_llm.complete.await_args.args[0]
        assert "Acme raises Series B funding" in prompt

    @pytest.mark.asyncio
    async def test_premium_uses_premium_tier(self, canned_llm, signals):
        await ReportSummarizer(canned_llm).summarize(signals, ["Acme"], premium=True)
        assert canned_llm.complete.await_args.kwargs["tier"] == "premium"

    @pytest.mark.asyncio
    async def test_invalid_json_is_an_error(self, make_llm, signals):
        summarizer = ReportSummarizer(make_llm("Acme had a busy quarter {not json"))
        with pytest.raises(ReportGenerationError, match="Failed to generate"):
            await summarizer.summarize(signals, ["Acme"])

    @pytest.mark.asyncio
    async def test_partial_report_is_an_error(self, make_llm, signals):
        summarizer = ReportSummarizer(make_llm('{"executive_summary": "Only this"}'))
        with pytest.raises(ReportGenerationError):
            await summarizer.summarize(signals, ["Acme"])

    @pytest.mark.asyncio
    async def test_no_llm_is_an_error(self, signals):
        with pytest.raises(ReportGenerationError):
            await ReportSummarizer(None).summarize(signals, ["Acme"])

    @pytest.mark.asyncio
    async def test_preview_trims_items_and_uses_fast_tier(self, make_llm):
        items = [SignalItem(f"Acme headline {w}", f"Body {w}") for w in ("alpha", "bravo", "charlie", "delta", "echo")]
        client = make_llm('{"executive_summary": "Short", "competitor_insights": []}')

        preview = await ReportSummarizer(client).fast_preview(
            [CompetitorSignal("Aggregated Sources", "Acme", items)], ["Acme"],
        )

        assert preview["executive_summary"] == "Short"
        assert client.complete.await_args.kwargs["tier"] == "fast"
        prompt = client.complete.await_args.args[0]
        assert "Acme headline charlie" in prompt
        assert "Acme headline delta" not in prompt

    @pytest.mark.asyncio
    async def test_preview_failure_is_none(self, make_llm, signals):
        assert await ReportSummarizer(make_llm("garbage")).fast_preview(signals, ["Acme"]) is None
        assert await ReportSummarizer(None).fast_preview(signals, ["Acme"]) is None


# =============================================================================
# SOCIAL SENTIMENT
# =============================================================================

class TestKeywordSentiment:
    """Tests for the deterministic fallback."""

    def test_more_positive(self):
        assert keyword_sentiment("Great support, love it, excellent docs, bad pricing") == "positive"

    def test_more_negative(self):
        assert keyword_sentiment("Terrible uptime and awful billing, good logo") == "negative"

    def test_tie_is_neutral(self):
        assert keyword_sentiment("great product, terrible support") == "neutral"
        assert keyword_sentiment("") == "neutral"

    def test_whole_words_only(self):
        assert keyword_sentiment("goodness badminton") == "neutral"


class TestSocialSentimentAnalyzer:
    """Tests for the multi-platform sentiment result."""

    @pytest.mark.asyncio
    async def test_fallback_without_llm_positive(self, make_source):
        comments = [
            SignalItem("Thread", "The dashboard is great.", url="https://hn/1"),
            SignalItem("Thread", "I love the API.", url="https://hn/2"),
            SignalItem("Thread", "Support was excellent.", url="https://hn/3"),
            SignalItem("Thread", "Pricing is bad.", url="https://hn/4"),
        ]
        source = make_source({"Acme": comments}, name="Hacker News")

        result = await SocialSentimentAnalyzer(None, sources=[source]).analyze("Acme")

        assert result.sentiment == "positive"
        assert result.total_mentions == 4
        assert result.platforms == ["Hacker News"]
        assert [q.text for q in result.top_quotes] == [c.content for c in comments[:3]]

    @pytest.mark.asyncio
    async def test_fallback_without_llm_tie(self, make_source):
        comments = [
            SignalItem("Thread", "The dashboard is great."),
            SignalItem("Thread", "The mobile app is terrible."),
        ]
        source = make_source({"Acme": comments}, name="Hacker News")

        result = await SocialSentimentAnalyzer(None, sources=[source]).analyze("Acme")

        assert result.sentiment == "neutral"

    @pytest.mark.asyncio
    async def test_llm_label_used(self, make_source):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=[
            llm_response('{"summary": "Mostly complaints about pricing."}'),
            llm_response('{"sentiment": "Negative"}'),
        ])
        source = make_source({"Acme": [SignalItem("Thread", "Great product")]}, name="Hacker News")

        result = await SocialSentimentAnalyzer(client, sources=[source]).analyze("Acme")

        assert result.sentiment == "negative"

    @pytest.mark.asyncio
    async def test_llm_chosen_quotes_used(self, make_source):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=[
            llm_response(json.dumps({
                "summary": "Fans of the API, unhappy about pricing.",
                "quotes": ["I love the API.", "Pricing is bad.", "Support rocks.", "Extra quote."],
            })),
            llm_response('{"sentiment": "neutral"}'),
        ])
        comments = [
            SignalItem("Thread", "Long intro. I love the API.", url="https://hn/1"),
            SignalItem("Thread", "Pricing is bad.", url="https://hn/2"),
            SignalItem("Thread", "Meh.", url="https://hn/3"),
        ]
        source = make_source({"Acme": comments}, name="Hacker News")

        result = await SocialSentimentAnalyzer(client, sources=[source]).analyze("Acme")

        assert [q.text for q in result.top_quotes] == ["I love the API.", "Pricing is bad.", "Support rocks."]
        assert [q.url for q in result.top_quotes] == ["https://hn/1", "https://hn/2", None]

    @pytest.mark.asyncio
    async def test_unusable_llm_quotes_fall_back_to_trimmed_comments(self, make_source):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=[
            llm_response('{"summary": "Mixed.", "quotes": "not a list"}'),
            llm_response('{"sentiment": "neutral"}'),
        ])
        long_comment = "word " * 100
        source = make_source({"Acme": [SignalItem("Thread", long_comment)]}, name="Hacker News")

        result = await SocialSentimentAnalyzer(client, sources=[source]).analyze("Acme")

        assert [q.text for q in result.top_quotes] == [long_comment[:300]]

    @pytest.mark.asyncio
    async def test_malformed_platform_payload_is_no_discussion(self):
        def handler(request):
            return httpx.Response(200, json={"hits": ["not-a-dict", None]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        source = HackerNewsSource(client=client)

        assert await SocialSentimentAnalyzer(None, sources=[source]).analyze("Acme") is None

    @pytest.mark.asyncio
    async def test_unknown_label_falls_back_to_keywords(self, make_source):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=[
            llm_response('{"summary": "People love it and say it is great."}'),
            llm_response('{"sentiment": "mixed"}'),
        ])
        source = make_source({"Acme": [SignalItem("Thread", "ok")]}, name="Hacker News")

        result = await SocialSentimentAnalyzer(client, sources=[source]).analyze("Acme")

        assert result.sentiment == "positive"

    @pytest.mark.asyncio
    async def test_quotes_capped_across_platforms(self, make_source):
        items = [SignalItem("Thread", f"Comment {i}") for i in range(5)]
        sources = [
            make_source({"Acme": items}, name="Hacker News"),
            make_source({"Acme": items}, name="Reddit"),
            make_source({"Acme": items}, name="Forum"),
        ]

        result = await SocialSentimentAnalyzer(None, sources=sources).analyze("Acme")

        assert len(result.top_quotes) == 6
        assert result.total_mentions == 15
        data = result.to_dict()
        assert data["socialMedia"]["totalMentions"] == 15
        assert len(data["socialMedia"]["topQuotes"]) == 6

    @pytest.mark.asyncio
    async def test_no_discussion_is_none(self, make_source, failing_source):
        analyzer = SocialSentimentAnalyzer(None, sources=[make_source({}), failing_source])
        assert await analyzer.analyze("Acme") is None

    def test_reddit_disabled_by_default(self):
        analyzer = SocialSentimentAnalyzer(None)
        assert [s.name for s in analyzer.sources] == ["Hacker News"]


# =============================================================================
# SUGGESTIONS
# =============================================================================

CANDIDATES = [
    RawSuggestion("Notion", "notion.so", "https://notion.so"),
    RawSuggestion("Coda", "coda.io", "https://coda.io"),
    RawSuggestion("Airtable", "airtable.com", "https://airtable.com"),
    RawSuggestion("Wikipedia", "wikipedia.org", "https://wikipedia.org"),
]


class TestSuggestionAnalyzer:
    """Tests for suggestion scoring and its fallback."""

    @pytest.mark.asyncio
    async def test_filters_sorts_and_caps(self, make_llm):
        scored = {
            "suggestions": [
                {"name": "Coda", "domain": "coda.io", "relevanceScore": 70, "isValid": True},
                {"name": "Notion", "domain": "notion.so", "relevanceScore": 95, "isValid": True},
                {"name": "Wikipedia", "domain": "wikipedia.org", "relevanceScore": 20, "isValid": True},
                {"name": "Fake Co", "domain": "fake.example", "relevanceScore": 90, "isValid": False},
            ] + [
                {"name": f"Vendor {i}", "domain": f"v{i}.com", "relevanceScore": 50 + i, "isValid": True}
                for i in range(5)
            ],
            "summary": "Crowded market",
            "confidence": "high",
        }
        analysis = await SuggestionAnalyzer(make_llm(json.dumps(scored))).analyze("Confluence", CANDIDATES)

        names = [s.name for s in analysis.suggestions]
        assert names == ["Notion", "Coda", "Vendor 4", "Vendor 3", "Vendor 2"]
        assert analysis.confidence == "high"
        assert analysis.to_dict()["suggestions"][0]["relevanceScore"] == 95

    @pytest.mark.asyncio
    async def test_fallback_on_llm_failure(self, make_llm):
        analysis = await SuggestionAnalyzer(make_llm("not json")).analyze("Confluence", CANDIDATES)

        assert [s.name for s in analysis.suggestions] == ["Notion", "Coda", "Airtable"]
        assert all(s.relevance_score == 60 for s in analysis.suggestions)
        assert analysis.confidence == "low"

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        analysis = await SuggestionAnalyzer(None).analyze("Confluence", [])
        assert analysis.suggestions == []
        assert analysis.summary == "No competitor suggestions found to analyze."

    @pytest.mark.asyncio
    async def test_discover_skips_company_and_existing(self):
        feed = """<rss><channel>
        <item><title>Notion - all-in-one workspace</title><link>https://www.notion.so/</link>
        <description>Notion workspace</description></item>
        <item><title>Coda | docs that work like apps</title><link>https://coda.io/</link>
        <description>Coda docs</description></item>
        <item><title>Confluence alternatives</title><link>https://www.confluence.com/</link>
        <description>Confluence itself</description></item>
        <item><title>Slite - team knowledge base</title><link>https://slite.com/</link>
        <description>Slite wiki</description></item>
        </channel></rss>"""

        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text=feed))) as http:
            analysis = await SuggestionAnalyzer(None, http_client=http).discover("Confluence", existing=["Notion"])

        assert [s.name for s in analysis.suggestions] == ["Coda", "Slite"]
        assert [s.domain for s in analysis.suggestions] == ["coda.io", "slite.com"]

    @pytest.mark.asyncio
    async def test_search_failure_is_empty(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503))) as http:
            assert await SuggestionAnalyzer(None, http_client=http).search_candidates("Confluence") == []
