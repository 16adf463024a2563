"""
Full article fetching for sources whose feed entry only carries a snippet.
"""

import re
from typing import Optional

import httpx

from app.config import FETCH_TIMEOUT_SECONDS
from app.core import get_logger

logger = get_logger(__name__, component="content_fetcher")

_BLOCK_TAGS = re.compile(r"<(script|style|noscript|head|nav|footer|header)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_PARAGRAPH = re.compile(r"<p[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)

_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&apos;": "'",
}


def clean_html(text: str) -> str:
    """Remove HTML tags, bare URLs and common entities; collapse whitespace."""
    if not text:
        return ""
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"https?://[^\s]+", "", text)
    text = re.sub(r"www\.[^\s]+", "", text)
    for entity, replacement in _ENTITIES.items():
        text = text.replace(entity, replacement)
    return " ".join(text.split()).strip()


def extract_article_text(html: str) -> str:
    """Article body text: paragraph contents when present, else the whole page."""
    html = _BLOCK_TAGS.sub(" ", html or "")
    paragraphs = [clean_html(p) for p in _PARAGRAPH.findall(html)]
    paragraphs = [p for p in paragraphs if p]
    if paragraphs:
        return "\n\n".join(paragraphs)
    return clean_html(html)


async def fetch_full_content(url: str, client: Optional[httpx.AsyncClient] = None) -> Optional[str]:
    """
    Download ``url`` and extract its article text.

    Returns None on any network or HTTP error; a failed fetch only means the
    candidate keeps its original snippet.
    """
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True)
    try:
        response = await client.get(url, headers={"User-Agent": "ScriptConveyor/1.0"})
        response.raise_for_status()
        return extract_article_text(response.text)
    except httpx.HTTPError as e:
        logger.warning("Full content fetch failed", extra={"url": url, "error": str(e)})
        return None
    finally:
        if owns_client:
            await client.aclose()
