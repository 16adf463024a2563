"""
Writer (stage 5) - writes the scene-by-scene script.

In revision mode the prompt carries the reviewer's notes, the current
scenes and up to three previous versions. When the reviewer selected
specific scenes, the other scenes must come back verbatim; that is checked
after the fact and reported as a warning, never as a failure.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.config.constants import (
    MAX_EXAMPLE_CHARS,
    MAX_PREVIOUS_VERSIONS,
    MAX_PROFILE_PATTERNS,
    MAX_SCRIPT_EXAMPLES,
)
from app.core import get_logger
from app.models import (
    AnalysisData,
    ArchitectureData,
    ConveyorSettings,
    RevisionContext,
    Scene,
    ScriptData,
    SourceData,
    WritingProfile,
)
from .base import AgentContext, GenerationAgent, ValidationResult

logger = get_logger(__name__, component="writer")

# A rejection category becomes a writing rule once it has been seen twice
MIN_PATTERN_COUNT = 2

REJECTION_INSTRUCTIONS: Dict[str, str] = {
    "too_long": "Keep it tight; cut anything that does not move the story forward",
    "too_short": "Develop the main part with more detail and examples",
    "boring_intro": "Open with a surprising fact or question, never with background",
    "weak_cta": "End with a specific, compelling call to action",
    "too_formal": "Write conversationally, as if talking to a friend",
    "too_casual": "Keep a more professional register",
    "boring_topic": "Lead with the most surprising angle of the topic",
    "wrong_tone": "Match the tone the audience expects for this topic",
    "no_hook": "The first sentence must hook the viewer within 3 seconds",
    "too_complex": "Use short sentences and plain words",
    "off_topic": "Stay strictly on the main topic",
    "other": "Follow the reviewer's earlier feedback closely",
}

FORMALITY_INSTRUCTIONS = {
    "formal": "Use a formal, professional style without slang.",
    "conversational": "Write conversationally with simple sentences.",
    "casual": "Write very informally with colloquial phrasing.",
}

TONE_INSTRUCTIONS = {
    "serious": "Keep the tone serious and focused on facts.",
    "engaging": "Keep the tone energetic; use rhetorical questions.",
    "funny": "Add humor and light irony.",
    "motivational": "Keep the tone motivating and end with a push to act.",
}


@dataclass
class WriterInput:
    source: SourceData
    analysis: AnalysisData
    architecture: ArchitectureData
    settings: Optional[ConveyorSettings] = None
    profile: Optional[WritingProfile] = None
    revision: Optional[RevisionContext] = None
    previous_scenes: List[Scene] = field(default_factory=list)


def _avoid_section(rejection_patterns: Dict[str, int]) -> str:
    rules = [
        f"- {REJECTION_INSTRUCTIONS.get(category, REJECTION_INSTRUCTIONS['other'])}"
        for category, count in sorted(rejection_patterns.items())
        if count >= MIN_PATTERN_COUNT
    ]
    if not rules:
        return ""
    return "\nAVOID (the reviewer rejected scripts for this):\n" + "\n".join(rules) + "\n"


def _style_section(preferences: Dict[str, str]) -> str:
    lines = [
        FORMALITY_INSTRUCTIONS.get(preferences.get("formality", ""), ""),
        TONE_INSTRUCTIONS.get(preferences.get("tone", ""), ""),
    ]
    lines = [line for line in lines if line]
    if not lines:
        return ""
    return "\nSTYLE:\n" + "\n".join(lines) + "\n"


def _examples_section(examples: List[str]) -> str:
    if not examples:
        return ""
    samples = "\n\n".join(
        f"--- Example {i} ---\n{example[:MAX_EXAMPLE_CHARS]}"
        for i, example in enumerate(examples[:MAX_SCRIPT_EXAMPLES], start=1)
    )
    return f"\nEXAMPLE SCRIPTS (write in a similar style, plain voiceover text only):\n{samples}\n"


def _profile_section(profile: Optional[WritingProfile]) -> str:
    if profile is None or profile.is_empty():
        return ""
    parts = []
    if profile.instructions:
        parts.append(f"Instructions: {profile.instructions}")
    if profile.ai_summary:
        parts.append(f"Summary of preferences: {profile.ai_summary}")
    if profile.avoid_patterns:
        parts.append("Avoid:\n" + "\n".join(f"- {p}" for p in profile.avoid_patterns[:MAX_PROFILE_PATTERNS]))
    if profile.prefer_patterns:
        parts.append("Prefer:\n" + "\n".join(f"- {p}" for p in profile.prefer_patterns[:MAX_PROFILE_PATTERNS]))
    return "\nWRITER PROFILE:\n" + "\n".join(parts) + "\n"


def build_guidance(settings: Optional[ConveyorSettings], profile: Optional[WritingProfile]) -> str:
    """User-specific writing guidance appended to the Writer prompt."""
    if settings is None:
        return _profile_section(profile)
    guidance = [
        _avoid_section(settings.rejection_patterns),
        _style_section(settings.style_preferences),
        f"\nCUSTOM GUIDELINES:\n{settings.custom_guidelines}\n" if settings.custom_guidelines else "",
        _examples_section(settings.script_examples),
        _profile_section(profile),
    ]
    return "".join(guidance)


def _format_scenes(scenes: List[Scene]) -> str:
    if not scenes:
        return "(no scenes)"
    return "\n".join(f"Scene {scene.id} ({scene.label}): \"{scene.text}\"" for scene in scenes)


def build_revision_section(revision: RevisionContext, previous_scenes: List[Scene]) -> str:
    lines = [
        "\nREVISION REQUEST",
        f"Reviewer notes: \"{revision.notes}\"",
        f"Attempt: {revision.attempt}",
        "",
        "CURRENT SCRIPT:",
        _format_scenes(previous_scenes),
    ]
    if revision.selected_scene_ids:
        ids = ", ".join(str(scene_id) for scene_id in revision.selected_scene_ids)
        lines += [
            "",
            f"Change ONLY scenes {ids}. Copy every other scene word for word.",
        ]
    else:
        lines += [
            "",
            "Change only what the notes ask for and keep the parts the reviewer liked verbatim.",
        ]
    versions = revision.previous_versions[-MAX_PREVIOUS_VERSIONS:]
    if versions:
        lines += ["", "PREVIOUS VERSIONS (do not repeat their problems):"]
        for version in versions:
            lines.append(f"v{version.version_number}: {version.full_script[:600]}")
            if version.feedback:
                lines.append(f"  feedback: {version.feedback}")
    return "\n".join(lines) + "\n"


def changed_untouched_scenes(previous: List[Scene], revised: List[Scene],
                             selected_scene_ids: List[int]) -> List[int]:
    """IDs of scenes outside the selection whose text changed in the revision."""
    selected = set(selected_scene_ids)
    revised_by_id = {scene.id: scene for scene in revised}
    changed = []
    for scene in previous:
        if scene.id in selected:
            continue
        counterpart = revised_by_id.get(scene.id)
        if counterpart is None or counterpart.text.strip() != scene.text.strip():
            changed.append(scene.id)
    return changed


class WriterAgent(GenerationAgent[WriterInput, ScriptData]):
    stage = 5
    name = "Writer"
    step = "writing"
    prompt_name = "WRITE_SCRIPT"

    def validate(self, data: WriterInput) -> ValidationResult:
        if data.analysis is None or data.architecture is None:
            return ValidationResult.fail("Analysis and architecture required")
        if data.source is None:
            return ValidationResult.fail("Source required")
        return ValidationResult.ok()

    async def execute(self, data: WriterInput, context: AgentContext) -> ScriptData:
        architecture = data.architecture
        revision = data.revision

        if revision:
            self.emit_thinking(context, f"Revising script (attempt {revision.attempt})")
        else:
            self.emit_thinking(context, f"Writing a {architecture.format_name} script, ~{architecture.estimated_duration}s")

        raw = await self.generate_json(
            context,
            format_name=architecture.format_name,
            duration=architecture.estimated_duration,
            template=architecture.template.model_dump_json(),
            main_topic=data.analysis.main_topic,
            key_facts="\n".join(f"- {fact}" for fact in data.analysis.key_facts),
            emotional_angles=", ".join(data.analysis.emotional_angles),
            title=data.source.title,
            content=data.source.content[:1500 if revision else 6000],
            guidance=build_guidance(data.settings, data.profile),
            revision=build_revision_section(revision, data.previous_scenes) if revision else "",
        )
        script = (ScriptData.from_response(raw, architecture.estimated_duration) if raw
                  else ScriptData.fallback(architecture.estimated_duration))

        if revision and revision.selected_scene_ids and data.previous_scenes:
            changed = changed_untouched_scenes(data.previous_scenes, script.scenes, revision.selected_scene_ids)
            if changed:
                self.emit_message(context, f"Warning: scenes {changed} were changed although only "
                                           f"{revision.selected_scene_ids} were selected for editing")
                logger.warning("Revision changed unselected scenes", extra={
                    "item_id": context.item_id,
                    "selected_scene_ids": revision.selected_scene_ids,
                    "changed_scene_ids": changed,
                })

        self.emit_thinking(context, f"Script ready: {len(script.scenes)} scenes")
        return script
