"""
Revision processor - forks a delivered script's item for re-entry at stage 5.
"""

from typing import List, Optional

from app.config.constants import MAX_PREVIOUS_VERSIONS
from app.core import get_logger
from app.core.exceptions import NotFoundError
from app.models import GeneratedScript, PipelineItem, PreviousVersion, RevisionContext
from app.services.infrastructure.storage import ItemRepository, ScriptRepository
from .events import EventBus
from .orchestrator import Orchestrator, ProcessResult

logger = get_logger(__name__, component="revision")


class RevisionProcessor:
    def __init__(self, items: ItemRepository, scripts: ScriptRepository, orchestrator: Orchestrator, bus: EventBus):
        self.items = items
        self.scripts = scripts
        self.orchestrator = orchestrator
        self.bus = bus

    def previous_versions(self, script_id: str) -> List[PreviousVersion]:
        """Up to the last three versions, oldest first."""
        versions = self.scripts.list_versions(script_id, limit=MAX_PREVIOUS_VERSIONS)
        return [
            PreviousVersion(
                version_number=version.version_number,
                full_script=version.full_script,
                scenes=version.scenes,
                feedback=version.feedback,
            )
            for version in reversed(versions)
        ]

    def create_revision_item(self, script: GeneratedScript, feedback: str,
                             selected_scene_ids: Optional[List[int]] = None) -> PipelineItem:
        """
        Fork the script's item into a revision item.

        ``script`` must be the record as it was before it was marked for
        revision: the attempt number is its revision_count + 1.

        Raises:
            NotFoundError: the script's original item no longer exists
        """
        parent = self.items.get(script.item_id)
        if parent is None:
            raise NotFoundError(f"Original pipeline item {script.item_id} not found")

        context = RevisionContext(
            notes=feedback,
            previous_script_id=script.id,
            attempt=script.revision_count + 1,
            previous_versions=self.previous_versions(script.id),
            selected_scene_ids=selected_scene_ids or None,
        )
        item = self.items.create_for_revision(parent, context)
        self.bus.item_started(item.user_id, item.id, f"Revision {context.attempt}: {script.title}")
        logger.info("Revision item created", extra={
            "item_id": item.id,
            "script_id": script.id,
            "attempt": context.attempt,
            "selected_scene_ids": selected_scene_ids,
        })
        return item

    async def process(self, item_id: str) -> ProcessResult:
        return await self.orchestrator.process_revision_item(item_id)
