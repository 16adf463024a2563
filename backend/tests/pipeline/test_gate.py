"""
Tests for the Gate decision ladder
"""

import itertools

import pytest

from app.models import GateDecision, OptimizationData, QCData, Scene, ScriptData, Severity, WeakSpot
from app.services.pipeline.agents import GateAgent, GateInput, decide_gate

SCORES = tuple(range(64, 86))
RATES = (0.69, 0.70, 0.71)
HOOKS = (80, 79, 49)


def _expected(overall, critical, hook, rate):
    """Decision and confidence for a point of the grid, worked out band by band."""
    if critical:
        return (GateDecision.NEEDS_REVIEW, 0.50) if overall >= 65 else (GateDecision.FAIL, 0.90)
    if overall < 70:
        return GateDecision.FAIL, 0.90
    if overall < 75:
        return GateDecision.NEEDS_REVIEW, 0.60
    if overall >= 85 and hook >= 80:
        return GateDecision.PASS, 0.95
    if rate > 0.7:
        return GateDecision.PASS, 0.80
    return GateDecision.NEEDS_REVIEW, 0.70


def _qc(overall, hook=80, critical=False):
    spots = [WeakSpot(scene_id=2, area="structure", severity=Severity.CRITICAL)] if critical else []
    return QCData(hook_score=hook, overall_score=overall, weak_spots=spots)


class TestDecisionLadder:
    """Test suite for decide_gate"""

    @pytest.mark.parametrize("overall,hook,critical,rate,decision,confidence", [
        (85, 80, False, 0.5, GateDecision.PASS, 0.95),
        (85, 79, False, 0.5, GateDecision.NEEDS_REVIEW, 0.70),
        (85, 79, False, 0.71, GateDecision.PASS, 0.80),
        (75, 80, False, 0.71, GateDecision.PASS, 0.80),
        (75, 80, False, 0.70, GateDecision.NEEDS_REVIEW, 0.70),
        (74, 80, False, 0.71, GateDecision.NEEDS_REVIEW, 0.60),
        (70, 80, False, 0.5, GateDecision.NEEDS_REVIEW, 0.60),
        (69, 80, False, 0.5, GateDecision.FAIL, 0.90),
        (90, 90, True, 0.9, GateDecision.NEEDS_REVIEW, 0.50),
        (65, 80, True, 0.5, GateDecision.NEEDS_REVIEW, 0.50),
        (64, 80, True, 0.5, GateDecision.FAIL, 0.90),
    ])
    def test_rungs(self, overall, hook, critical, rate, decision, confidence):
        gate = decide_gate(_qc(overall, hook, critical), approval_rate=rate)

        assert gate.decision is decision
        assert gate.confidence == confidence
        assert gate.final_score == overall

    @pytest.mark.parametrize("overall,critical,rate,hook", list(itertools.product(SCORES, (False, True), RATES, HOOKS)))
    def test_grid(self, overall, critical, rate, hook):
        gate = decide_gate(_qc(overall, hook, critical), approval_rate=rate)

        assert (gate.decision, gate.confidence) == _expected(overall, critical, hook, rate)
        if critical:
            assert gate.decision is not GateDecision.PASS

    def test_missing_approval_rate_defaults_to_half(self):
        assert decide_gate(_qc(78)).decision is GateDecision.NEEDS_REVIEW
        assert decide_gate(_qc(78), approval_rate=0.75).decision is GateDecision.PASS

    def test_fail_reasons(self):
        assert "score 60 below 65" in decide_gate(_qc(60, hook=40)).reason
        assert "weak hook (40)" in decide_gate(_qc(60, hook=40)).reason
        assert "critical issues" in decide_gate(_qc(60, critical=True)).reason
        assert "below review threshold 70" in decide_gate(_qc(67)).reason

    def test_iteration_count_comes_from_last_optimization(self):
        script = ScriptData(scenes=[Scene(id=1, text="x")], full_script="x")

        gate = decide_gate(_qc(80), OptimizationData.unchanged(script, iteration=2))

        assert gate.passed_after_iterations == 2
        assert decide_gate(_qc(80)).passed_after_iterations == 0


class TestGateAgent:
    """Test suite for the Gate stage wrapper"""

    @pytest.mark.asyncio
    async def test_gate_costs_nothing_and_emits_decision(self, agent_context, recorded_events):
        _, events = recorded_events

        result = await GateAgent().process(GateInput(qc=_qc(88, hook=85)), agent_context)

        assert result.success is True
        assert result.data.decision is GateDecision.PASS
        assert result.cost == 0.0
        assert any(e.data.thinking and e.data.thinking.startswith("PASS") for e in events)

    @pytest.mark.asyncio
    async def test_missing_qc_is_rejected(self, agent_context):
        result = await GateAgent().process(GateInput(qc=None), agent_context)

        assert result.success is False
