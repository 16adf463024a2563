"""
Tests for ScriptReviewUseCase
"""

from unittest.mock import MagicMock

import pytest

from app.core.exceptions import InvalidStateError, MaxRevisionsReachedError, NotFoundError
from app.models import ItemStatus, RejectionCategory, ScriptStatus
from app.services.use_cases import REVISION_LIMIT_REASON, ScriptReviewUseCase

USER = "user-1"


@pytest.fixture
def use_case(services):
    return ScriptReviewUseCase(services.scripts, services.learning, services.revisions)


@pytest.fixture
def pending_script(services, make_source):
    async def _deliver(item_id="src-1"):
        result = await services.orchestrator.process_item(USER, make_source(item_id=item_id))
        return services.scripts.get(result.script_id)
    return _deliver


def exhaust_revisions(services, script_id, count=5):
    for attempt in range(count):
        services.scripts.mark_for_revision(script_id, f"round {attempt + 1}")


class TestApproveAndReject:
    """Approve and reject feed the learning service"""

    @pytest.mark.asyncio
    async def test_approve(self, use_case, services, pending_script):
        script = await pending_script()

        approved = use_case.approve_script(script.id)

        assert approved.status is ScriptStatus.APPROVED
        assert approved.reviewed_at is not None
        settings = services.settings.get(USER)
        assert settings.total_approved == 1
        assert settings.preferred_formats == ["explainer"]

    @pytest.mark.asyncio
    async def test_approve_twice_is_refused(self, use_case, pending_script):
        script = await pending_script()
        use_case.approve_script(script.id)

        with pytest.raises(InvalidStateError):
            use_case.approve_script(script.id)

    @pytest.mark.asyncio
    async def test_reject_with_category(self, use_case, services, pending_script):
        script = await pending_script()

        rejected = use_case.reject_script(script.id, RejectionCategory.BORING_TOPIC, "Old news")

        assert rejected.status is ScriptStatus.REJECTED
        assert rejected.rejection_category is RejectionCategory.BORING_TOPIC
        assert rejected.rejection_reason == "Old news"
        settings = services.settings.get(USER)
        assert settings.total_rejected == 1
        assert settings.avoided_topics == [script.title]

    @pytest.mark.asyncio
    async def test_script_in_revision_cannot_be_rejected(self, use_case, services, pending_script):
        script = await pending_script()
        services.scripts.mark_for_revision(script.id, "Shorter")

        with pytest.raises(InvalidStateError):
            use_case.reject_script(script.id)

    def test_unknown_script(self, use_case):
        with pytest.raises(NotFoundError):
            use_case.approve_script("missing")


class TestRequestRevision:
    """Test suite for ScriptReviewUseCase.request_revision"""

    @pytest.mark.asyncio
    async def test_revision_runs_inline(self, use_case, services, pending_script):
        script = await pending_script()

        result = await use_case.request_revision(script.id, "Make the hook shorter", [1])

        assert result.script_id == script.id
        assert result.attempt == 1
        assert result.item_id is not None
        revised_item = services.items.get(result.item_id)
        assert revised_item.status is ItemStatus.COMPLETED
        assert revised_item.parent_item_id == script.item_id

        updated = services.scripts.get(script.id)
        assert updated.status is ScriptStatus.PENDING
        assert updated.revision_count == 1
        assert services.scripts.count_versions(script.id) == 1

        settings = services.settings.get(USER)
        assert settings.rejection_patterns == {"too_long": 1, "boring_intro": 1}
        assert services.profiles.get(USER).feedback_count == 1

    @pytest.mark.asyncio
    async def test_background_tasks_defer_the_run(self, use_case, services, pending_script):
        script = await pending_script()
        background_tasks = MagicMock()

        result = await use_case.request_revision(script.id, "Punchier", background_tasks=background_tasks)

        background_tasks.add_task.assert_called_once()
        assert services.scripts.get(script.id).status is ScriptStatus.REVISION
        assert services.items.get(result.item_id).status is ItemStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_revision_limit_rejects_script(self, use_case, services, pending_script):
        script = await pending_script()
        exhaust_revisions(services, script.id)

        with pytest.raises(MaxRevisionsReachedError):
            await use_case.request_revision(script.id, "One more time")

        rejected = services.scripts.get(script.id)
        assert rejected.status is ScriptStatus.REJECTED
        assert rejected.rejection_category is RejectionCategory.OTHER
        assert rejected.rejection_reason == REVISION_LIMIT_REASON
        assert services.settings.get(USER).total_rejected == 1
        assert len(services.items.list_by_user(USER)) == 1

    @pytest.mark.asyncio
    async def test_approved_script_cannot_be_revised(self, use_case, pending_script):
        script = await pending_script()
        use_case.approve_script(script.id)

        with pytest.raises(InvalidStateError):
            await use_case.request_revision(script.id, "Too late")

    @pytest.mark.asyncio
    async def test_unconfigured_generation_fails_the_revision_item(self, use_case, services, pending_script,
                                                                   generation_factory):
        script = await pending_script()
        services.orchestrator.agents.writer.generation = generation_factory(configured=False)

        result = await use_case.request_revision(script.id, "Shorter")

        item = services.items.get(result.item_id)
        assert item.status is ItemStatus.FAILED
        assert item.error_stage == 5
        assert item.error_message == "Generation service is not configured"
        assert services.scripts.get(script.id).status is ScriptStatus.REVISION


class TestResetRevision:
    """Test suite for ScriptReviewUseCase.reset_revision"""

    @pytest.mark.asyncio
    async def test_stuck_revision_returns_to_pending(self, use_case, services, pending_script):
        script = await pending_script()
        services.scripts.mark_for_revision(script.id, "Shorter")

        reset = use_case.reset_revision(script.id)

        assert reset.status is ScriptStatus.PENDING
        assert reset.revision_count == 0
        assert reset.revision_notes is None

    @pytest.mark.asyncio
    async def test_pending_script_below_cap_is_refused(self, use_case, pending_script):
        script = await pending_script()

        with pytest.raises(InvalidStateError):
            use_case.reset_revision(script.id)


class TestReviewQueue:
    """The queue only holds scripts awaiting a decision"""

    @pytest.mark.asyncio
    async def test_queue_lists_pending_and_revision(self, use_case, services, pending_script):
        pending = await pending_script("src-1")
        in_revision = await pending_script("src-2")
        approved = await pending_script("src-3")
        services.scripts.mark_for_revision(in_revision.id, "Shorter")
        use_case.approve_script(approved.id)

        queue = use_case.list_review_queue(USER)

        assert {script.id for script in queue} == {pending.id, in_revision.id}

    @pytest.mark.asyncio
    async def test_gate_failures_never_reach_the_queue(self, use_case, services, generation, make_source):
        generation.set("quality_control", None)
        await services.orchestrator.process_item(USER, make_source())

        assert use_case.list_review_queue(USER) == []

    @pytest.mark.asyncio
    async def test_versions(self, use_case, pending_script):
        script = await pending_script()
        await use_case.request_revision(script.id, "Shorter")

        versions = use_case.list_versions(script.id)

        assert [version.version_number for version in versions] == [1]
