"""
Reddit discussion from business and tech subreddits.

Searches the past week of posts, keeps those in the subreddit allow-list,
and returns their top-level comments.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from lemonade.config import get_settings
from .base import SignalSource, SourceUnavailableError
from .models import SignalItem, SignalType

logger = logging.getLogger(__name__)

REDDIT_SEARCH_URL = "https://www.reddit.com/search.json"
REDDIT_BASE_URL = "https://www.reddit.com"

MIN_COMMENT_LENGTH = 10
SKIPPED_BODIES = {"[deleted]", "[removed]"}


def listing_children(listing) -> List[dict]:
    """`data` dicts of a listing's children; anything malformed is skipped."""
    if not isinstance(listing, dict) or not isinstance(listing.get("data"), dict):
        return []
    children = listing["data"].get("children")
    if not isinstance(children, list):
        return []
    return [
        child["data"] for child in children
        if isinstance(child, dict) and isinstance(child.get("data"), dict)
    ]


class RedditSource(SignalSource):
    """Comments from recent allow-listed Reddit posts about a competitor."""

    name = "Reddit"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, delay: float = 0.5,
                 subreddits: Optional[List[str]] = None, post_limit: int = 10,
                 max_posts: int = 5, comments_per_post: int = 20):
        super().__init__(client=client, delay=delay)
        allowed = subreddits if subreddits is not None else get_settings().REDDIT_SUBREDDITS
        self.subreddits = {s.lower() for s in allowed}
        self.post_limit = post_limit
        self.max_posts = max_posts
        self.comments_per_post = comments_per_post

    async def search_posts(self, client: httpx.AsyncClient, query: str) -> List[dict]:
        params = {"q": query, "type": "posts", "t": "week", "sort": "new", "limit": self.post_limit}
        response = await client.get(REDDIT_SEARCH_URL, params=params)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise SourceUnavailableError("unexpected search response shape")

        posts = []
        for post in listing_children(data):
            if str(post.get("subreddit") or "").lower() in self.subreddits:
                posts.append(post)
        return posts[: self.post_limit]

    async def fetch_comments(self, client: httpx.AsyncClient, permalink: str) -> List[str]:
        """Top-level comment bodies; listing errors yield no comments."""
        try:
            response = await client.get(f"{REDDIT_BASE_URL}{permalink}.json")
            response.raise_for_status()
            listing = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[Reddit] comments failed for {permalink}: {e}")
            return []

        if not isinstance(listing, list) or len(listing) < 2:
            return []

        comments = []
        for comment in listing_children(listing[1]):
            body = str(comment.get("body") or "").strip()
            if body in SKIPPED_BODIES or len(body) <= MIN_COMMENT_LENGTH:
                continue
            comments.append(body)
            if len(comments) >= self.comments_per_post:
                break
        return comments

    async def _fetch(self, client: httpx.AsyncClient, competitor: str) -> List[SignalItem]:
        posts = await self.search_posts(client, competitor)

        items = []
        for index, post in enumerate(posts[: self.max_posts]):
            if index:
                await self._pause()
            permalink = post.get("permalink")
            if not isinstance(permalink, str) or not permalink:
                continue
            created = post.get("created_utc")
            published = (
                datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
                if isinstance(created, (int, float)) and created else None
            )
            for body in await self.fetch_comments(client, permalink):
                items.append(SignalItem(
                    title=f"r/{post.get('subreddit')}: {post.get('title', '')}",
                    content=body,
                    url=f"{REDDIT_BASE_URL}{permalink}",
                    published_at=published,
                    type=SignalType.SOCIAL,
                ))
        return items
