"""
Tests for the QC / Optimize loop
"""

import pytest

from app.core.exceptions import StageFailedError
from app.models import OptimizationData, Scene, ScriptData
from app.services.pipeline import QCLoop, apply_optimization
from app.services.pipeline.agents import OptimizerAgent, QCAgent

WEAK_QC = {"hook_score": 60, "structure_score": 60, "emotional_score": 60, "cta_score": 60}
GOOD_QC = {"hook_score": 80, "structure_score": 78, "emotional_score": 76, "cta_score": 78}
REWRITE = {
    "improved_scenes": [{"id": 1, "text": "Punchy hook"}, {"id": 2}],
    "changes": [{"scene_id": 1, "original": "Slow hook", "improved": "Punchy hook"}],
}


@pytest.fixture
def script():
    return ScriptData(
        scenes=[Scene(id=1, label="hook", text="Slow hook"), Scene(id=2, label="cta", text="Follow")],
        full_script="Slow hook Follow",
        estimated_duration=45,
    )


@pytest.fixture
def saved():
    return []


@pytest.fixture
def run_loop(generation, agent_context, script, saved):
    loop = QCLoop(QCAgent(generation), OptimizerAgent(generation))

    async def _run():
        return await loop.run(script, None, agent_context,
                              save_stage=lambda stage, data, cost: saved.append((stage, cost)))
    return _run


class TestQCLoop:
    """Test suite for QCLoop.run"""

    @pytest.mark.asyncio
    async def test_passing_first_review_skips_optimizer(self, generation, run_loop, saved):
        result = await run_loop()

        assert result.qc.passed is True
        assert result.qc_runs == 1
        assert result.optimization is None
        assert generation.count("optimization") == 0
        assert saved == [(6, 0.07)]

    @pytest.mark.asyncio
    async def test_optimized_script_is_reviewed_again(self, generation, run_loop, saved):
        generation.set("quality_control", WEAK_QC, GOOD_QC)
        generation.set("optimization", REWRITE)

        result = await run_loop()

        assert result.qc_runs == 2
        assert result.iterations == 1
        assert result.qc.overall_score == 78
        assert result.script.scenes[0].text == "Punchy hook"
        assert result.script.estimated_duration == 45
        assert [stage for stage, _ in saved] == [6, 7, 6]

    @pytest.mark.asyncio
    async def test_loop_is_bounded(self, generation, run_loop):
        generation.set("quality_control", WEAK_QC)
        generation.set("optimization", REWRITE)

        result = await run_loop()

        assert generation.count("quality_control") == 3
        assert generation.count("optimization") == 2
        assert result.iterations == 2
        assert result.optimization.iteration_number == 2
        assert result.qc.passed is False

    @pytest.mark.asyncio
    async def test_optimizer_failure_keeps_current_script(self, generation, run_loop, script):
        generation.set("quality_control", WEAK_QC)
        generation.set("optimization", RuntimeError("backend down"))

        result = await run_loop()

        assert result.qc_runs == 1
        assert result.script == script
        assert result.optimization is None

    @pytest.mark.asyncio
    async def test_optimizer_without_changes_ends_loop(self, generation, run_loop, saved):
        generation.set("quality_control", WEAK_QC)
        generation.set("optimization", {"improved_scenes": [{"id": 1}, {"id": 2}], "changes": []})

        result = await run_loop()

        assert result.qc_runs == 1
        assert result.optimization.needs_reqc is False
        assert [stage for stage, _ in saved] == [6, 7]

    @pytest.mark.asyncio
    async def test_qc_failure_aborts_with_stage_six(self, generation, run_loop):
        generation.set("quality_control", RuntimeError("timeout"))

        with pytest.raises(StageFailedError) as exc_info:
            await run_loop()

        assert exc_info.value.stage == 6


class TestApplyOptimization:
    """Test suite for apply_optimization"""

    def test_duration_is_kept(self, script):
        optimization = OptimizationData.unchanged(script, iteration=1)

        assert apply_optimization(script, optimization).estimated_duration == 45
