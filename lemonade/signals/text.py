"""
Text helpers shared by the fetchers: HTML cleanup, dates, story
deduplication and content trimming.
"""

import html
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, List, Optional

from .models import SignalItem, SignalType

TAG_RE = re.compile(r"<[^>]*>")
WS_RE = re.compile(r"\s+")

# Abbreviations whose dots must not end a sentence
_ABBREVIATIONS = {"U.S.": "U․S․", "U.K.": "U․K․", "etc.": "etc․"}

FUNDING_WORDS = ("funding", "investment", "round", "raised")
PRODUCT_WORDS = ("launch", "release", "feature", "product")
SOCIAL_WORDS = ("twitter", "social", "tweet")


def clean_html(text: str) -> str:
    """Strip tags, decode entities, collapse whitespace."""
    if not text:
        return ""
    text = TAG_RE.sub("", text)
    text = html.unescape(text)
    return WS_RE.sub(" ", text).strip()


def classify_item_type(title: str, content: str, query: str = "", extended: bool = False) -> SignalType:
    """
    Keyword classification of an item.

    The extended vocabulary (used for search-query results) also counts
    venture, announcement and linkedin.
    """
    text = f"{query} {title} {content}".lower()

    funding = FUNDING_WORDS + (("venture",) if extended else ())
    product = PRODUCT_WORDS + (("announcement",) if extended else ())
    social = SOCIAL_WORDS + (("linkedin",) if extended else ())

    if any(word in text for word in funding):
        return SignalType.FUNDING
    if any(word in text for word in product):
        return SignalType.PRODUCT
    if any(word in text for word in social):
        return SignalType.SOCIAL
    return SignalType.NEWS


def parse_published(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 or ISO 8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def significant_words(title: str) -> List[str]:
    words = re.sub(r"[^\w\s]", "", (title or "").lower()).split()
    return [w for w in words if len(w) > 3]


def is_same_story(a: SignalItem, b: SignalItem, threshold: float = 0.6) -> bool:
    """
    Same URL, or at least 60% of the shorter title's significant words
    appear in the other title.
    """
    if a.url and a.url == b.url:
        return True

    words_a = significant_words(a.title)
    words_b = significant_words(b.title)
    if not words_a or not words_b:
        return False

    common = [w for w in words_a if w in words_b]
    return len(common) / min(len(words_a), len(words_b)) >= threshold


def dedupe_items(items: Iterable[SignalItem]) -> List[SignalItem]:
    """Drop later duplicates of a story; first occurrence wins."""
    unique: List[SignalItem] = []
    for item in items:
        if not any(is_same_story(kept, item) for kept in unique):
            unique.append(item)
    return unique


def sort_newest_first(items: Iterable[SignalItem]) -> List[SignalItem]:
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    return sorted(items, key=lambda i: parse_published(i.published_at) or epoch, reverse=True)


def within_lookback(item: SignalItem, cutoff: datetime) -> bool:
    """Undated items are kept."""
    published = parse_published(item.published_at)
    return published is None or published >= cutoff


def trim_content(content: str, max_chars: int = 800, target_chars: int = 600) -> str:
    """
    Shorten content to whole sentences.

    Sentences are added until the summary reaches target_chars, then the
    result is cut at max_chars.
    """
    if not content:
        return ""

    text = TAG_RE.sub("", content).strip()
    if len(text) <= max_chars:
        return text

    for abbr, placeholder in _ABBREVIATIONS.items():
        text = text.replace(abbr, placeholder)

    sentences = [s.strip() for s in re.split(r"[.!?]+", text)]
    sentences = [s for s in sentences if len(s) > 5]

    summary = ""
    for sentence in sentences:
        if len(summary) >= target_chars:
            break
        summary = f"{summary}. {sentence}" if summary else sentence

    for abbr, placeholder in _ABBREVIATIONS.items():
        summary = summary.replace(placeholder, abbr)

    return summary[:max_chars].strip()
