"""Source providers for the Scout stage."""

from .base import SourceCandidate, SourceProvider, StaticSourceProvider
from .content_fetcher import clean_html, extract_article_text, fetch_full_content
from .rss import RssSourceProvider, parse_feed

__all__ = [
    "SourceCandidate",
    "SourceProvider",
    "StaticSourceProvider",
    "RssSourceProvider",
    "parse_feed",
    "clean_html",
    "extract_article_text",
    "fetch_full_content",
]
