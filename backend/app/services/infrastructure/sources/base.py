"""
Source providers - where Scout finds candidate items.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel

from app.models import SourceType


class SourceCandidate(BaseModel):
    """A raw item offered by a provider, before Scout's filters."""
    id: str
    source_id: str
    type: SourceType = SourceType.NEWS
    title: str
    content: str = ""
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None


class SourceProvider(ABC):
    """Supplies candidate items of one source type."""

    source_type: SourceType = SourceType.NEWS

    @abstractmethod
    async def list_candidates(self, user_id: str, source_ids: Optional[List[str]] = None) -> List[SourceCandidate]:
        """
        Return the candidates currently available to ``user_id``.

        Args:
            user_id: Owning user
            source_ids: Restrict to these sources when non-empty
        """


class StaticSourceProvider(SourceProvider):
    """In-memory provider, used for manual runs and tests."""

    def __init__(self, candidates: Iterable[SourceCandidate] = (), source_type: SourceType = SourceType.NEWS):
        self.source_type = source_type
        self._candidates = list(candidates)

    def add(self, candidate: SourceCandidate) -> None:
        self._candidates.append(candidate)

    async def list_candidates(self, user_id: str, source_ids: Optional[List[str]] = None) -> List[SourceCandidate]:
        if source_ids:
            return [c for c in self._candidates if c.source_id in source_ids]
        return list(self._candidates)
