"""
Service container - wires repositories, the event bus, stage agents and the
long-lived services for one data directory.

Routes and the lifespan hook share one instance through ``get_container()``.
Tests build their own ``ServiceContainer`` against a temporary directory
(or call ``reset_container()`` after changing CONVEYOR_DATA_DIR).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from app.config import GEMINI_API_KEY, RSS_FEED_URLS, get_data_dir
from app.core import get_logger
from app.models import SourceType
from app.services.infrastructure.llm import GenerationService
from app.services.infrastructure.sources import RssSourceProvider, SourceProvider, StaticSourceProvider
from app.services.infrastructure.storage import (
    AuditLogRepository,
    EventLogRepository,
    FileBasedItemRepository,
    ScriptRepository,
    SettingsRepository,
    WritingProfileRepository,
)
from app.services.pipeline import (
    DurableEventLog,
    EventBus,
    LearningService,
    Orchestrator,
    PipelineAgents,
    RevisionProcessor,
)
from app.services.pipeline.agents import ScoutAgent
from app.services.scheduling import ScheduledRunner

logger = get_logger(__name__, component="container")


@dataclass
class ServiceContainer:
    data_dir: Path
    items: FileBasedItemRepository
    scripts: ScriptRepository
    settings: SettingsRepository
    profiles: WritingProfileRepository
    events: EventLogRepository
    audit: AuditLogRepository
    bus: EventBus
    event_log: DurableEventLog
    generation: GenerationService
    scout: ScoutAgent
    orchestrator: Orchestrator
    revisions: RevisionProcessor
    learning: LearningService
    runner: ScheduledRunner

    @classmethod
    def build(
        cls,
        data_dir: Optional[Path] = None,
        generation: Optional[GenerationService] = None,
        providers: Optional[Dict[SourceType, SourceProvider]] = None,
    ) -> "ServiceContainer":
        data_dir = Path(data_dir) if data_dir is not None else get_data_dir()

        items = FileBasedItemRepository(data_dir)
        scripts = ScriptRepository(data_dir)
        settings = SettingsRepository(data_dir)
        profiles = WritingProfileRepository(data_dir)
        events = EventLogRepository(data_dir)
        audit = AuditLogRepository(data_dir)

        bus = EventBus()
        event_log = DurableEventLog(events).attach(bus)

        generation = generation or GenerationService(api_key=GEMINI_API_KEY)
        if providers is None:
            providers = {
                SourceType.NEWS: RssSourceProvider(RSS_FEED_URLS),
                SourceType.SOCIAL: StaticSourceProvider(source_type=SourceType.SOCIAL),
            }

        scout = ScoutAgent(providers)
        orchestrator = Orchestrator(
            items, scripts, settings, profiles, bus,
            PipelineAgents.build(generation, scripts, settings, audit),
        )
        revisions = RevisionProcessor(items, scripts, orchestrator, bus)
        learning = LearningService(settings, profiles, audit)
        runner = ScheduledRunner(items, settings, audit, scout, orchestrator, bus)

        logger.info("Service container built", extra={
            "data_dir": str(data_dir),
            "generation_configured": generation.is_configured,
            "source_types": [t.value for t in providers],
        })
        return cls(
            data_dir=data_dir,
            items=items,
            scripts=scripts,
            settings=settings,
            profiles=profiles,
            events=events,
            audit=audit,
            bus=bus,
            event_log=event_log,
            generation=generation,
            scout=scout,
            orchestrator=orchestrator,
            revisions=revisions,
            learning=learning,
            runner=runner,
        )


_container_instance: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the shared ServiceContainer instance (singleton pattern)."""
    global _container_instance
    if _container_instance is None:
        _container_instance = ServiceContainer.build()
    return _container_instance


def set_container(container: Optional[ServiceContainer]) -> None:
    global _container_instance
    _container_instance = container


def reset_container() -> None:
    set_container(None)
