"""
Tests for TriggerUseCase
"""

import pytest

from app.core.exceptions import (
    InvalidStateError,
    LimitReachedError,
    NotFoundError,
    RetryLimitExceededError,
)
from app.models import EventType, ItemStatus, ScriptStatus
from app.services.use_cases import TriggerUseCase

USER = "user-1"


@pytest.fixture
def use_case(services):
    return TriggerUseCase(
        services.items,
        services.settings,
        services.audit,
        services.orchestrator,
        services.runner,
        services.bus,
    )


class TestTriggerForUser:
    """Test suite for TriggerUseCase.trigger_for_user"""

    @pytest.mark.asyncio
    async def test_runs_a_batch(self, use_case, services, news_provider, make_candidate):
        services.settings.update(USER, enabled=True)
        news_provider.add(make_candidate())

        summary = await use_case.trigger_for_user(USER)

        assert summary.processed == 1
        assert summary.results[0].success is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, use_case):
        with pytest.raises(NotFoundError):
            await use_case.trigger_for_user("nobody")

    @pytest.mark.asyncio
    async def test_disabled_user(self, use_case, services):
        services.settings.get_or_create(USER)

        with pytest.raises(InvalidStateError):
            await use_case.trigger_for_user(USER)


class TestProcessSpecificItem:
    """Test suite for TriggerUseCase.process_specific_item"""

    @pytest.mark.asyncio
    async def test_success_is_counted(self, use_case, services, make_source):
        result = await use_case.process_specific_item(USER, make_source())

        assert result.success is True
        settings = services.settings.get(USER)
        assert settings.items_processed_today == 1
        assert settings.current_month_cost == pytest.approx(0.14)

    @pytest.mark.asyncio
    async def test_duplicate_source_is_refused(self, use_case, make_source):
        await use_case.process_specific_item(USER, make_source())

        with pytest.raises(InvalidStateError, match="already processed"):
            await use_case.process_specific_item(USER, make_source())

    @pytest.mark.asyncio
    async def test_budget_checked_before_daily_cap(self, use_case, services, generation, make_source):
        services.settings.update(USER, daily_limit=0, monthly_budget_limit=0.0)

        with pytest.raises(LimitReachedError) as exc_info:
            await use_case.process_specific_item(USER, make_source())

        assert exc_info.value.limit_type == "budget"
        assert generation.count("scoring") == 0
        audit = services.audit.list_for_user(USER, "limit_reached")
        assert audit[0]["details"] == {"limit": "budget", "manual": True}

    @pytest.mark.asyncio
    async def test_daily_cap(self, use_case, services, make_source):
        services.settings.update(USER, daily_limit=0)

        with pytest.raises(LimitReachedError) as exc_info:
            await use_case.process_specific_item(USER, make_source())

        assert exc_info.value.limit_type == "daily"

    @pytest.mark.asyncio
    async def test_rejected_item_is_not_counted(self, use_case, services, generation, make_source):
        generation.set("scoring", {"score": 10})

        result = await use_case.process_specific_item(USER, make_source())

        assert result.success is False
        assert services.settings.get(USER).items_processed_today == 0


class TestRetryItem:
    """Test suite for TriggerUseCase.retry_item"""

    @pytest.mark.asyncio
    async def test_failed_item_runs_again(self, use_case, services, generation, make_source):
        generation.set("scoring", RuntimeError("quota exceeded"), {"score": 82})
        failed = await use_case.process_specific_item(USER, make_source())
        assert failed.rejected is False

        result = await use_case.retry_item(failed.item_id)

        assert result.success is True
        item = services.items.get(failed.item_id)
        assert item.status is ItemStatus.COMPLETED
        assert item.retry_count == 1
        assert item.error_stage is None
        assert item.score_data.score == 82

    @pytest.mark.asyncio
    async def test_only_failed_items(self, use_case, make_source):
        done = await use_case.process_specific_item(USER, make_source())

        with pytest.raises(InvalidStateError):
            await use_case.retry_item(done.item_id)

    @pytest.mark.asyncio
    async def test_rejected_item_is_final(self, use_case, services, generation, make_source):
        generation.set("scoring", {"score": 10}, {"score": 82})
        rejected = await use_case.process_specific_item(USER, make_source())
        assert rejected.rejected is True
        assert services.items.get(rejected.item_id).rejected is True

        with pytest.raises(InvalidStateError, match="Rejected"):
            await use_case.retry_item(rejected.item_id)

        item = services.items.get(rejected.item_id)
        assert item.status is ItemStatus.FAILED
        assert item.retry_count == 0
        assert item.score_data.score == 10
        assert generation.count("scoring") == 1

    @pytest.mark.asyncio
    async def test_failed_revision_keeps_inherited_stages(self, use_case, services, generation, make_source):
        delivered = await use_case.process_specific_item(USER, make_source())
        script = services.scripts.get(delivered.script_id)
        writing = generation.responses["writing"][0]
        generation.set("writing", RuntimeError("timeout"), writing)
        fork = services.revisions.create_revision_item(script, "Shorter intro")
        services.scripts.mark_for_revision(script.id, "Shorter intro")
        failed = await services.revisions.process(fork.id)
        assert failed.success is False
        assert failed.stage == 5
        inherited = services.items.get(fork.id)

        result = await use_case.retry_item(fork.id)

        assert result.success is True
        item = services.items.get(fork.id)
        assert item.status is ItemStatus.COMPLETED
        assert item.retry_count == 1
        assert item.source_data == inherited.source_data
        assert item.score_data == inherited.score_data
        assert item.analysis_data == inherited.analysis_data
        assert item.architecture_data == inherited.architecture_data
        assert item.script_data is not None
        assert generation.count("scoring") == 1
        revised = services.scripts.get(script.id)
        assert revised.status is ScriptStatus.PENDING
        assert [v.version_number for v in services.scripts.list_versions(script.id)] == [1]

    @pytest.mark.asyncio
    async def test_retry_limit(self, use_case, generation, make_source):
        generation.set("scoring", RuntimeError("quota exceeded"))
        failed = await use_case.process_specific_item(USER, make_source())
        for _ in range(3):
            await use_case.retry_item(failed.item_id)

        with pytest.raises(RetryLimitExceededError):
            await use_case.retry_item(failed.item_id)

    @pytest.mark.asyncio
    async def test_unknown_item(self, use_case):
        with pytest.raises(NotFoundError):
            await use_case.retry_item("missing")


class TestCancelItem:
    """Test suite for TriggerUseCase.cancel_item"""

    def test_cancel_processing_item(self, use_case, services, make_source):
        item = services.items.create(USER, make_source())

        cancelled = use_case.cancel_item(item.id)

        assert cancelled.status is ItemStatus.CANCELLED
        events = services.events.list_for_item(USER, item.id)
        assert events[-1].type == EventType.ITEM_FAILED
        assert events[-1].data.error == "cancelled"

    def test_cancel_finished_item(self, use_case, services, make_source):
        item = services.items.create(USER, make_source())
        services.items.fail(item.id, 2, "Score below threshold")

        with pytest.raises(InvalidStateError):
            use_case.cancel_item(item.id)

    def test_other_users_item_is_hidden(self, use_case, services, make_source):
        item = services.items.create(USER, make_source())

        with pytest.raises(NotFoundError):
            use_case.cancel_item(item.id, user_id="someone-else")
