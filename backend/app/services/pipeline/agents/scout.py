"""
Scout (stage 1) - collects candidate source items for a user.

Pure filtering, no generation calls.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from app.config.constants import DEFAULT_MAX_AGE_DAYS, MIN_CONTENT_LENGTH, MIN_SCORABLE_LENGTH
from app.models import ConveyorSettings, SourceData, SourceType
from app.services.infrastructure.sources import SourceCandidate, SourceProvider, fetch_full_content
from .base import AgentContext, StageAgent, ValidationResult

ContentFetcher = Callable[[str], Awaitable[Optional[str]]]


@dataclass
class ScoutInput:
    settings: Optional[ConveyorSettings]
    now: Optional[datetime] = None


@dataclass
class ScoutOutput:
    items: List[SourceData] = field(default_factory=list)
    total_found: int = 0
    filtered: int = 0


def _naive(moment: datetime) -> datetime:
    """Local naive time, so aware feed timestamps compare with naive clocks."""
    return moment.astimezone().replace(tzinfo=None) if moment.tzinfo else moment


def passes_filters(candidate: SourceCandidate, keywords: List[str], exclude_keywords: List[str],
                   max_age_days: int, now: datetime) -> bool:
    text = f"{candidate.title} {candidate.content}".lower()
    if keywords and not any(keyword.lower() in text for keyword in keywords if keyword):
        return False
    if any(keyword.lower() in text for keyword in exclude_keywords if keyword):
        return False
    if candidate.published_at is not None:
        if _naive(now) - _naive(candidate.published_at) > timedelta(days=max_age_days):
            return False
    return True


class ScoutAgent(StageAgent[ScoutInput, ScoutOutput]):
    stage = 1
    name = "Scout"

    def __init__(self, providers: Dict[SourceType, SourceProvider],
                 fetcher: ContentFetcher = fetch_full_content):
        self.providers = providers
        self.fetcher = fetcher

    def validate(self, data: ScoutInput) -> ValidationResult:
        if data.settings is None:
            return ValidationResult.fail("Settings required")
        return ValidationResult.ok()

    async def execute(self, data: ScoutInput, context: AgentContext) -> ScoutOutput:
        settings = data.settings
        now = data.now or datetime.now()
        source_types = settings.source_types or [SourceType.NEWS]
        max_age_days = settings.max_age_days or DEFAULT_MAX_AGE_DAYS
        output = ScoutOutput()

        self.emit_thinking(context, f"Collecting sources: types={[t.value for t in source_types]}, "
                                    f"max age={max_age_days} days")

        for index, source_type in enumerate(source_types, start=1):
            provider = self.providers.get(source_type)
            if provider is None:
                self.emit_thinking(context, f"No provider for '{source_type.value}' sources, skipping")
                self.emit_progress(context, index / len(source_types))
                continue

            candidates = await provider.list_candidates(context.user_id, settings.source_ids or None)
            output.total_found += len(candidates)

            for candidate in candidates:
                if not passes_filters(candidate, settings.keywords, settings.exclude_keywords, max_age_days, now):
                    output.filtered += 1
                    continue

                content = candidate.content or ""
                if len(content) < MIN_CONTENT_LENGTH and candidate.url:
                    self.emit_thinking(context, f"Fetching full text: \"{candidate.title[:40]}\"")
                    fetched = await self.fetcher(candidate.url)
                    if fetched and len(fetched) > len(content):
                        content = fetched

                if len(content) < MIN_SCORABLE_LENGTH:
                    self.emit_thinking(context, f"Skipping \"{candidate.title[:30]}\": content too short ({len(content)} chars)")
                    output.filtered += 1
                    continue

                output.items.append(SourceData(
                    type=candidate.type,
                    item_id=candidate.id,
                    title=candidate.title,
                    content=content,
                    url=candidate.url,
                    published_at=candidate.published_at or now,
                    image_url=candidate.image_url,
                ))

            self.emit_progress(context, index / len(source_types), f"{source_type.value}: {len(candidates)} candidates")

        if output.items:
            self.emit_thinking(context, f"Found {len(output.items)} usable items")
        else:
            self.emit_thinking(context, f"No usable items. Found: {output.total_found}, filtered: {output.filtered}")
        return output

    @staticmethod
    def _summarize(output: ScoutOutput) -> dict:
        return {"count": len(output.items), "total_found": output.total_found, "filtered": output.filtered}
