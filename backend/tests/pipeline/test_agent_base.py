"""
Tests for the StageAgent lifecycle shared by every stage
"""

from dataclasses import dataclass

import pytest

from app.core.exceptions import ItemCancelledError, StageFailedError
from app.models import EventType, ScoreData
from app.services.pipeline.agents import GenerationAgent, StageAgent, ValidationResult


@dataclass
class Payload:
    value: int


class EchoAgent(StageAgent[Payload, int]):
    stage = 8
    name = "Echo"

    def __init__(self, error=None):
        self.error = error

    def validate(self, data):
        if data.value < 0:
            return ValidationResult.fail("value must be positive")
        return ValidationResult.ok()

    async def execute(self, data, context):
        if self.error:
            raise self.error
        self.emit_thinking(context, "echoing")
        return data.value * 2


class ScoringAgent(GenerationAgent[Payload, ScoreData]):
    stage = 2
    name = "Scorer"
    step = "scoring"
    prompt_name = "SCORE_SOURCE"

    def validate(self, data):
        return ValidationResult.ok()

    async def execute(self, data, context):
        raw = await self.generate_json(context, title="t", content="c")
        return ScoreData.from_response(raw, 70) if raw else ScoreData.fallback(70)


def _types(events):
    return [event.type for event in events]


class TestStageAgentLifecycle:
    """Test suite for StageAgent.process"""

    @pytest.mark.asyncio
    async def test_success_emits_started_thinking_completed(self, agent_context, recorded_events):
        _, events = recorded_events

        result = await EchoAgent().process(Payload(21), agent_context)

        assert result.success is True
        assert result.data == 42
        assert _types(events) == [EventType.STAGE_STARTED, EventType.STAGE_THINKING, EventType.STAGE_COMPLETED]
        history = agent_context.extra["history"]
        assert len(history) == 1 and history[0].success is True

    @pytest.mark.asyncio
    async def test_invalid_input_fails_without_events(self, agent_context, recorded_events):
        _, events = recorded_events

        result = await EchoAgent().process(Payload(-1), agent_context)

        assert result.success is False
        assert result.error == "value must be positive"
        assert events == []
        assert agent_context.extra["history"] == []

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self, agent_context, recorded_events):
        _, events = recorded_events

        result = await EchoAgent(error=RuntimeError("backend down")).process(Payload(1), agent_context)

        assert result.success is False
        assert result.error == "backend down"
        assert _types(events) == [EventType.STAGE_STARTED, EventType.STAGE_FAILED]
        assert agent_context.extra["history"][0].error == "backend down"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, agent_context):
        with pytest.raises(ItemCancelledError):
            await EchoAgent(error=ItemCancelledError("item-1", 8)).process(Payload(1), agent_context)

    def test_stage_name_and_cost(self):
        assert EchoAgent().stage_name == "Gate"
        assert EchoAgent().estimated_cost == 0.0


class TestGenerationAgent:
    """Test suite for generation-backed stages"""

    @pytest.mark.asyncio
    async def test_success_costs_the_stage_estimate(self, generation, agent_context):
        result = await ScoringAgent(generation).process(Payload(1), agent_context)

        assert result.success is True
        assert result.data.score == 82
        assert result.cost == 0.01
        assert generation.count("scoring") == 1

    @pytest.mark.asyncio
    async def test_unconfigured_service_fails_before_running(self, agent_context, recorded_events,
                                                             generation_factory):
        _, events = recorded_events
        generation = generation_factory(configured=False)

        result = await ScoringAgent(generation).process(Payload(1), agent_context)

        assert result.success is False
        assert result.error == "Generation service is not configured"
        assert generation.calls == []
        assert events == []

    @pytest.mark.asyncio
    async def test_failed_call_is_an_operational_failure(self, generation, agent_context):
        generation.set("scoring", RuntimeError("Failed after 3 attempts: 503"))

        result = await ScoringAgent(generation).process(Payload(1), agent_context)

        assert result.success is False
        assert "503" in result.error
        assert result.cost == 0.0

    @pytest.mark.asyncio
    async def test_unparsable_response_uses_fallback(self, generation, agent_context, recorded_events):
        _, events = recorded_events
        generation.set("scoring", None)

        result = await ScoringAgent(generation).process(Payload(1), agent_context)

        assert result.success is True
        assert result.data.score == 0
        assert any(e.data.thinking == "Response could not be parsed, using defaults" for e in events)

    def test_stage_failed_error_keeps_stage(self):
        error = StageFailedError(6, "QC failed")

        assert error.stage == 6
        assert error.message == "QC failed"
