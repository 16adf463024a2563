"""
Architect (stage 4) - picks the video format and timing template.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from app.models import AnalysisData, ArchitectureData, FORMATS, SourceData
from app.models.stages import default_duration
from .base import AgentContext, GenerationAgent, ValidationResult


@dataclass
class ArchitectInput:
    source: SourceData
    analysis: AnalysisData
    duration_range: Optional[List[int]] = None
    preferred_formats: List[str] = field(default_factory=list)


class ArchitectAgent(GenerationAgent[ArchitectInput, ArchitectureData]):
    stage = 4
    name = "Architect"
    step = "architecture"
    prompt_name = "CHOOSE_FORMAT"

    def validate(self, data: ArchitectInput) -> ValidationResult:
        if data.analysis is None or not data.analysis.main_topic:
            return ValidationResult.fail("Analysis required")
        return ValidationResult.ok()

    async def execute(self, data: ArchitectInput, context: AgentContext) -> ArchitectureData:
        duration = default_duration(data.duration_range)
        low, high = (list(data.duration_range) if data.duration_range and len(data.duration_range) == 2
                     else [duration, duration])
        preferred = ""
        if data.preferred_formats:
            preferred = f"USER PREFERS: {', '.join(data.preferred_formats)}\n"

        self.emit_thinking(context, f"Choosing a format for a {low}-{high}s video")
        raw = await self.generate_json(
            context,
            main_topic=data.analysis.main_topic,
            key_facts="\n".join(f"- {fact}" for fact in data.analysis.key_facts),
            emotional_angles=", ".join(data.analysis.emotional_angles),
            controversy_level=data.analysis.controversy_level,
            min_duration=low,
            max_duration=high,
            preferred_formats=preferred,
            formats="\n".join(f"- {format_id}: {name}" for format_id, name in FORMATS.items()),
            default_duration=duration,
        )
        architecture = ArchitectureData.from_response(raw, duration) if raw else ArchitectureData.fallback(duration)
        self.emit_thinking(context, f"Format: {architecture.format_name}, ~{architecture.estimated_duration}s")
        return architecture
