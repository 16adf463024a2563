"""
RSS source provider backed by feedparser.
"""

import asyncio
import hashlib
from datetime import datetime
from typing import List, Optional, Sequence

import feedparser

from app.core import get_logger
from app.models import SourceType
from .base import SourceCandidate, SourceProvider
from .content_fetcher import clean_html

logger = get_logger(__name__, component="rss_source")


def _entry_id(feed_url: str, entry) -> str:
    key = entry.get("id") or entry.get("link") or f"{feed_url}:{entry.get('title', '')}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


def _entry_published(entry) -> Optional[datetime]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6])


def _entry_image(entry) -> Optional[str]:
    for media in entry.get("media_content", []) or []:
        if media.get("url"):
            return media["url"]
    for link in entry.get("links", []) or []:
        if str(link.get("type", "")).startswith("image/") and link.get("href"):
            return link["href"]
    return None


def parse_feed(feed_url: str, raw_feed) -> List[SourceCandidate]:
    """Turn a parsed feed into candidates; entries without a title are dropped."""
    candidates: List[SourceCandidate] = []
    for entry in raw_feed.entries:
        title = clean_html(entry.get("title", ""))
        if not title:
            continue
        content = ""
        if entry.get("content"):
            content = clean_html(" ".join(part.get("value", "") for part in entry["content"]))
        if not content:
            content = clean_html(entry.get("summary", "") or entry.get("description", ""))
        candidates.append(SourceCandidate(
            id=_entry_id(feed_url, entry),
            source_id=feed_url,
            type=SourceType.NEWS,
            title=title,
            content=content,
            url=entry.get("link") or None,
            published_at=_entry_published(entry),
            image_url=_entry_image(entry),
        ))
    return candidates


class RssSourceProvider(SourceProvider):
    """Reads a fixed list of RSS feeds; a feed's URL is its source id."""

    source_type = SourceType.NEWS

    def __init__(self, feed_urls: Sequence[str]):
        self.feed_urls = list(feed_urls)

    async def _fetch_feed(self, feed_url: str) -> List[SourceCandidate]:
        raw_feed = await asyncio.to_thread(feedparser.parse, feed_url)
        if getattr(raw_feed, "bozo", False) and not raw_feed.entries:
            logger.warning("Feed could not be parsed", extra={
                "feed_url": feed_url,
                "error": str(getattr(raw_feed, "bozo_exception", "")),
            })
            return []
        return parse_feed(feed_url, raw_feed)

    async def list_candidates(self, user_id: str, source_ids: Optional[List[str]] = None) -> List[SourceCandidate]:
        urls = [url for url in self.feed_urls if not source_ids or url in source_ids]
        candidates: List[SourceCandidate] = []
        for url in urls:
            candidates.extend(await self._fetch_feed(url))
        logger.debug("RSS candidates loaded", extra={"user_id": user_id, "feeds": len(urls), "count": len(candidates)})
        return candidates
