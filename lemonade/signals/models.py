"""
Signal data model.

SignalItem is one piece of fetched content; CompetitorSignal groups the
items one source found for one competitor. Both serialize to the camelCase
shape stored in a report's signals blob.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SignalType(str, Enum):
    """Coarse item classification."""
    NEWS = "news"
    FUNDING = "funding"
    SOCIAL = "social"
    PRODUCT = "product"


@dataclass
class SignalItem:
    """One fetched item. Title and content are never empty."""
    title: str
    content: str
    url: Optional[str] = None
    published_at: Optional[str] = None
    type: SignalType = SignalType.NEWS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "url": self.url,
            "publishedAt": self.published_at,
            "type": self.type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignalItem":
        return cls(
            title=data.get("title", ""),
            content=data.get("content", ""),
            url=data.get("url"),
            published_at=data.get("publishedAt"),
            type=SignalType(data.get("type", "news")),
        )


@dataclass
class CompetitorSignal:
    """Items from one source about one competitor."""
    source: str
    competitor: str
    items: List[SignalItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "competitor": self.competitor,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompetitorSignal":
        return cls(
            source=data.get("source", ""),
            competitor=data.get("competitor", ""),
            items=[SignalItem.from_dict(i) for i in data.get("items", [])],
        )


@dataclass
class SignalSources:
    """Which source groups an analysis should pull from."""
    news: bool = True
    funding: bool = True
    social: bool = True
    products: bool = False

    def enabled(self) -> List[str]:
        """Names of the enabled groups, in fetch order."""
        return [
            name for name in ("news", "funding", "social", "products")
            if getattr(self, name)
        ]

    def cache_key(self) -> str:
        return ",".join(self.enabled()) or "none"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SignalSources":
        if not data:
            return cls()
        return cls(
            news=bool(data.get("news", False)),
            funding=bool(data.get("funding", False)),
            social=bool(data.get("social", False)),
            products=bool(data.get("products", False)),
        )


@dataclass
class SourceResult:
    """
    Outcome of one fetch: items, or the reason the source was unavailable.

    An Ok result with no items means the upstream had nothing to say; an
    Unavailable result means the fetch itself failed.
    """
    source: str
    items: List[SignalItem] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def ok(cls, source: str, items: List[SignalItem]) -> "SourceResult":
        return cls(source=source, items=list(items))

    @classmethod
    def unavailable(cls, source: str, reason: str) -> "SourceResult":
        return cls(source=source, items=[], reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.reason is None
