"""
Tests for the generation-backed stage agents: Scorer, Analyst, Architect,
Writer, Quality Control and Optimizer
"""

import pytest

from app.models import (
    AnalysisData,
    ArchitectureData,
    ConveyorSettings,
    EventType,
    PreviousVersion,
    QCData,
    RevisionContext,
    Scene,
    ScriptData,
    Severity,
    WeakSpot,
    WritingProfile,
)
from app.services.pipeline.agents import (
    AnalystAgent,
    AnalystInput,
    ArchitectAgent,
    ArchitectInput,
    OptimizerAgent,
    OptimizerInput,
    QCAgent,
    QCInput,
    ScorerAgent,
    ScorerInput,
    WriterAgent,
    WriterInput,
    build_guidance,
    changed_untouched_scenes,
)


@pytest.fixture
def analysis():
    return AnalysisData(main_topic="Ocean cleanup", key_facts=["a", "b", "c"], passed=True)


@pytest.fixture
def architecture():
    return ArchitectureData(format_id="explainer", format_name="Explainer", estimated_duration=60)


@pytest.fixture
def script():
    return ScriptData(
        scenes=[
            Scene(id=1, label="hook", text="Old hook"),
            Scene(id=2, label="main", text="Main part"),
            Scene(id=3, label="cta", text="Follow us"),
        ],
        full_script="Old hook Main part Follow us",
    )


class TestScorerAgent:
    """Test suite for the Scorer stage"""

    @pytest.mark.asyncio
    async def test_score_uses_threshold(self, generation, agent_context, make_source):
        result = await ScorerAgent(generation).process(ScorerInput(source=make_source(), threshold=85), agent_context)

        assert result.data.score == 82
        assert result.data.passed is False
        assert result.data.threshold == 85

    @pytest.mark.asyncio
    async def test_short_content_is_rejected_before_generation(self, generation, agent_context, make_source):
        result = await ScorerAgent(generation).process(
            ScorerInput(source=make_source(content="x" * 99), threshold=70), agent_context
        )

        assert result.success is False
        assert "min 100" in result.error
        assert generation.calls == []


class TestAnalystAgent:
    """Test suite for the Analyst stage"""

    @pytest.mark.asyncio
    async def test_avoided_topic_fails_analysis(self, generation, agent_context, make_source):
        result = await AnalystAgent(generation).process(
            AnalystInput(source=make_source(), avoided_topics=["ocean"]), agent_context
        )

        assert result.success is True
        assert result.data.passed is False
        assert result.data.avoid_reason is not None

    @pytest.mark.asyncio
    async def test_unparsable_analysis_fails(self, generation, agent_context, make_source):
        generation.set("analysis", None)

        result = await AnalystAgent(generation).process(AnalystInput(source=make_source()), agent_context)

        assert result.data.main_topic == "Parse error"
        assert result.data.passed is False


class TestArchitectAgent:
    """Test suite for the Architect stage"""

    @pytest.mark.asyncio
    async def test_duration_range_and_preferences_reach_the_prompt(self, generation, agent_context,
                                                                   make_source, analysis):
        result = await ArchitectAgent(generation).process(ArchitectInput(
            source=make_source(), analysis=analysis, duration_range=[40, 80], preferred_formats=["listicle"],
        ), agent_context)

        prompt = generation.prompts("architecture")[0]
        assert "40-80 seconds" in prompt
        assert "USER PREFERS: listicle" in prompt
        assert result.data.format_id == "explainer"

    @pytest.mark.asyncio
    async def test_fallback_uses_range_midpoint(self, generation, agent_context, make_source, analysis):
        generation.set("architecture", None)

        result = await ArchitectAgent(generation).process(
            ArchitectInput(source=make_source(), analysis=analysis, duration_range=[40, 80]), agent_context
        )

        assert result.data.format_id == "hook_story"
        assert result.data.estimated_duration == 60


class TestWriterGuidance:
    """Test suite for user guidance in the Writer prompt"""

    def test_repeated_rejections_become_rules(self):
        settings = ConveyorSettings(user_id="u", rejection_patterns={"too_long": 2, "weak_cta": 1})

        guidance = build_guidance(settings, None)

        assert "cut anything" in guidance
        assert "call to action" not in guidance

    def test_style_examples_and_profile(self):
        settings = ConveyorSettings(
            user_id="u",
            style_preferences={"formality": "casual", "tone": "funny"},
            custom_guidelines="Never mention brands",
            script_examples=["Example one"],
        )
        profile = WritingProfile(user_id="u", instructions="Short sentences", avoid_patterns=["jargon"])

        guidance = build_guidance(settings, profile)

        assert "very informally" in guidance
        assert "humor" in guidance
        assert "Never mention brands" in guidance
        assert "--- Example 1 ---" in guidance
        assert "Short sentences" in guidance
        assert "- jargon" in guidance

    def test_empty_settings_add_nothing(self):
        assert build_guidance(ConveyorSettings(user_id="u"), WritingProfile(user_id="u")) == ""


class TestWriterAgent:
    """Test suite for the Writer stage"""

    @pytest.mark.asyncio
    async def test_first_draft(self, generation, agent_context, make_source, analysis, architecture):
        result = await WriterAgent(generation).process(
            WriterInput(source=make_source(), analysis=analysis, architecture=architecture), agent_context
        )

        assert len(result.data.scenes) == 5
        assert result.cost == 0.02
        assert "REVISION REQUEST" not in generation.prompts("writing")[0]

    @pytest.mark.asyncio
    async def test_revision_prompt_carries_notes_scenes_and_versions(self, generation, agent_context,
                                                                     make_source, analysis, architecture, script):
        revision = RevisionContext(
            notes="Make the hook punchier",
            previous_script_id="s1",
            attempt=2,
            previous_versions=[PreviousVersion(version_number=1, full_script="First take", feedback="too slow")],
            selected_scene_ids=[1],
        )

        await WriterAgent(generation).process(WriterInput(
            source=make_source(), analysis=analysis, architecture=architecture,
            revision=revision, previous_scenes=script.scenes,
        ), agent_context)

        prompt = generation.prompts("writing")[0]
        assert "Make the hook punchier" in prompt
        assert "Scene 2 (main): \"Main part\"" in prompt
        assert "Change ONLY scenes 1" in prompt
        assert "v1: First take" in prompt

    @pytest.mark.asyncio
    async def test_changed_unselected_scenes_only_warn(self, generation, agent_context, recorded_events,
                                                       make_source, analysis, architecture, script):
        _, events = recorded_events
        generation.set("writing", {"scenes": [
            {"id": 1, "label": "hook", "text": "New hook"},
            {"id": 2, "label": "main", "text": "Rewritten main"},
            {"id": 3, "label": "cta", "text": "Follow us"},
        ]})
        revision = RevisionContext(notes="hook", previous_script_id="s1", attempt=1, selected_scene_ids=[1])

        result = await WriterAgent(generation).process(WriterInput(
            source=make_source(), analysis=analysis, architecture=architecture,
            revision=revision, previous_scenes=script.scenes,
        ), agent_context)

        assert result.success is True
        warnings = [e for e in events if e.type is EventType.AGENT_MESSAGE]
        assert len(warnings) == 1
        assert "[2]" in warnings[0].data.message

    def test_changed_untouched_scenes(self, script):
        revised = [Scene(id=1, text="changed"), Scene(id=2, text=" Main part "), ]

        assert changed_untouched_scenes(script.scenes, revised, [1]) == [3]


class TestQCAgent:
    """Test suite for the Quality Control stage"""

    @pytest.mark.asyncio
    async def test_review_costs_qc_estimate(self, generation, agent_context, script, architecture):
        result = await QCAgent(generation).process(QCInput(script=script, architecture=architecture), agent_context)

        assert result.data.overall_score == 87
        assert result.data.passed is True
        assert result.cost == 0.07
        assert "Explainer" in generation.prompts("quality_control")[0]

    @pytest.mark.asyncio
    async def test_script_without_scenes_is_rejected(self, generation, agent_context):
        result = await QCAgent(generation).process(
            QCInput(script=ScriptData(scenes=[], full_script="")), agent_context
        )

        assert result.success is False


class TestOptimizerAgent:
    """Test suite for the Optimizer stage"""

    def _failing_qc(self, severity=Severity.MAJOR):
        return QCData(
            hook_score=60, overall_score=65, passed=False,
            weak_spots=[WeakSpot(scene_id=1, area="hook", severity=severity, issue="Slow start")],
        )

    @pytest.mark.asyncio
    async def test_passed_qc_needs_no_generation(self, generation, agent_context, script):
        result = await OptimizerAgent(generation).process(
            OptimizerInput(script=script, qc=QCData(passed=True)), agent_context
        )

        assert result.data.changes == []
        assert generation.count("optimization") == 0

    @pytest.mark.asyncio
    async def test_minor_issues_are_not_optimized(self, generation, agent_context, script):
        result = await OptimizerAgent(generation).process(
            OptimizerInput(script=script, qc=self._failing_qc(Severity.MINOR)), agent_context
        )

        assert result.data.needs_reqc is False
        assert generation.count("optimization") == 0

    @pytest.mark.asyncio
    async def test_actionable_issues_are_sent_and_changes_returned(self, generation, agent_context, script):
        generation.set("optimization", {
            "improved_scenes": [{"id": 1, "text": "Punchy hook"}, {"id": 2}, {"id": 3}],
            "changes": [{"scene_id": 1, "original": "Old hook", "improved": "Punchy hook", "reason": "slow"}],
        })

        result = await OptimizerAgent(generation).process(
            OptimizerInput(script=script, qc=self._failing_qc(), iteration=1), agent_context
        )

        assert "Scene 1 [major/hook]: Slow start" in generation.prompts("optimization")[0]
        assert result.data.improved_scenes[0].text == "Punchy hook"
        assert result.data.improved_scenes[1].text == "Main part"
        assert result.data.needs_reqc is True
        assert result.cost == 0.015

    @pytest.mark.asyncio
    async def test_iteration_outside_range_is_rejected(self, generation, agent_context, script):
        result = await OptimizerAgent(generation).process(
            OptimizerInput(script=script, qc=self._failing_qc(), iteration=3), agent_context
        )

        assert result.success is False
