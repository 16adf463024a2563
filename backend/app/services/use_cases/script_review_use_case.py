"""
ScriptReviewUseCase - human review of delivered scripts.

Approve and reject feed the learning service; a revision request forks the
script's pipeline item and re-runs it from the Writer stage in the
background. After MAX_REVISIONS revisions the script is rejected instead.
"""

from dataclasses import dataclass
from typing import List, Optional

from fastapi import BackgroundTasks

from app.config.constants import MAX_REVISIONS
from app.core import get_logger
from app.core.exceptions import InvalidStateError, MaxRevisionsReachedError, NotFoundError
from app.models import GeneratedScript, RejectionCategory, ScriptStatus, ScriptVersion
from app.services.infrastructure.storage import ScriptRepository
from app.services.pipeline import LearningService, RevisionProcessor

logger = get_logger(__name__, component="script_review_use_case")

REVISION_LIMIT_REASON = "Maximum revision limit reached"


@dataclass
class RevisionRequestResult:
    script_id: str
    attempt: int
    item_id: Optional[str] = None
    status: ScriptStatus = ScriptStatus.REVISION


class ScriptReviewUseCase:
    def __init__(self, scripts: ScriptRepository, learning: LearningService, revisions: RevisionProcessor):
        self.scripts = scripts
        self.learning = learning
        self.revisions = revisions

    def get_script(self, script_id: str) -> GeneratedScript:
        script = self.scripts.get(script_id)
        if script is None:
            raise NotFoundError(f"Script {script_id} not found")
        return script

    def list_review_queue(self, user_id: str) -> List[GeneratedScript]:
        """Scripts awaiting a decision; FAIL decisions never produce a script."""
        return self.scripts.list_by_user(user_id, statuses=(ScriptStatus.PENDING, ScriptStatus.REVISION))

    def list_versions(self, script_id: str) -> List[ScriptVersion]:
        self.get_script(script_id)
        return self.scripts.list_versions(script_id)

    def approve_script(self, script_id: str) -> GeneratedScript:
        script = self.get_script(script_id)
        approved = self.scripts.approve(script.id)
        self.learning.on_approve(script.user_id, approved)
        logger.info("Script approved", extra={"script_id": script_id, "user_id": script.user_id})
        return approved

    def reject_script(self, script_id: str, category: RejectionCategory = RejectionCategory.OTHER,
                      reason: Optional[str] = None) -> GeneratedScript:
        script = self.get_script(script_id)
        if script.status is not ScriptStatus.PENDING:
            raise InvalidStateError(f"Script is {script.status.value}, only pending scripts can be rejected")
        rejected = self.scripts.reject(script.id, category, reason)
        self.learning.on_reject(script.user_id, rejected, category, reason)
        return rejected

    async def request_revision(
        self,
        script_id: str,
        feedback: str,
        selected_scene_ids: Optional[List[int]] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> RevisionRequestResult:
        """
        Mark the script for revision and start a revision run.

        With ``background_tasks`` the run is scheduled after the response,
        otherwise it is awaited here.

        Raises:
            NotFoundError: unknown script
            InvalidStateError: script is not pending or in revision
            MaxRevisionsReachedError: the script already had MAX_REVISIONS
                revisions; it is rejected before this is raised
        """
        script = self.get_script(script_id)
        if not script.status.is_reviewable():
            raise InvalidStateError(f"Script is {script.status.value} and cannot be revised")

        if script.revision_count >= MAX_REVISIONS:
            rejected = self.scripts.reject(script.id, RejectionCategory.OTHER, REVISION_LIMIT_REASON)
            self.learning.on_reject(script.user_id, rejected, RejectionCategory.OTHER, REVISION_LIMIT_REASON)
            logger.info("Revision limit reached, script rejected", extra={
                "script_id": script_id,
                "revision_count": script.revision_count,
            })
            raise MaxRevisionsReachedError(
                f"Maximum revision limit ({MAX_REVISIONS}) reached. Script has been rejected."
            )

        self.scripts.mark_for_revision(script.id, feedback)
        try:
            self.learning.on_revise(script.user_id, script, feedback)
        except Exception as e:
            logger.error("Learning update failed for revision", extra={
                "script_id": script_id,
                "error": str(e),
            }, exc_info=True)

        # The pre-revision record: attempt numbers derive from its revision_count
        result = RevisionRequestResult(script_id=script.id, attempt=script.revision_count + 1)
        try:
            item = self.revisions.create_revision_item(script, feedback, selected_scene_ids)
        except NotFoundError as e:
            logger.error("Could not create revision item", extra={"script_id": script_id, "error": str(e)})
            return result

        result.item_id = item.id
        if background_tasks is not None:
            background_tasks.add_task(self._run_revision, item.id, script.id)
        else:
            await self._run_revision(item.id, script.id)
        logger.info("Revision started", extra={
            "script_id": script_id,
            "item_id": item.id,
            "attempt": result.attempt,
            "selected_scene_ids": selected_scene_ids or [],
        })
        return result

    async def _run_revision(self, item_id: str, script_id: str) -> None:
        result = await self.revisions.process(item_id)
        logger.info("Revision processing finished", extra={
            "script_id": script_id,
            "item_id": item_id,
            "success": result.success,
            "error": result.error,
        })

    def reset_revision(self, script_id: str) -> GeneratedScript:
        """Return a script stuck in revision (or at the revision cap) to pending."""
        script = self.get_script(script_id)
        if script.status is not ScriptStatus.REVISION and script.revision_count < MAX_REVISIONS:
            raise InvalidStateError("Script is not in revision status")
        reset = self.scripts.reset_revision(script.id)
        logger.info("Revision reset", extra={"script_id": script_id})
        return reset
