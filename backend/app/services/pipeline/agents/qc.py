"""
Quality Control (stage 6) - scores hook, structure, emotion and CTA.
"""

from dataclasses import dataclass
from typing import Optional

from app.models import ArchitectureData, QCData, ScriptData
from .base import AgentContext, GenerationAgent, ValidationResult


@dataclass
class QCInput:
    script: ScriptData
    architecture: Optional[ArchitectureData] = None
    iteration: int = 1


class QCAgent(GenerationAgent[QCInput, QCData]):
    stage = 6
    name = "Quality Control"
    step = "quality_control"
    prompt_name = "REVIEW_SCRIPT"

    def validate(self, data: QCInput) -> ValidationResult:
        if data.script is None or not data.script.scenes:
            return ValidationResult.fail("Script with scenes required")
        return ValidationResult.ok()

    async def execute(self, data: QCInput, context: AgentContext) -> QCData:
        scene_count = len(data.script.scenes)
        self.emit_thinking(context, f"Reviewing {scene_count} scenes (pass {data.iteration})")
        raw = await self.generate_json(
            context,
            format_name=data.architecture.format_name if data.architecture else "short video",
            scenes="\n".join(
                f"Scene {scene.id} [{scene.label}] {scene.start}-{scene.end}s: {scene.text}"
                for scene in data.script.scenes
            ),
        )
        qc = QCData.from_response(raw, scene_count) if raw else QCData.fallback(scene_count)
        self.emit_thinking(context, f"Overall {qc.overall_score}/100 (hook {qc.hook_score}, "
                                    f"structure {qc.structure_score}, emotion {qc.emotional_score}, "
                                    f"CTA {qc.cta_score}), {len(qc.weak_spots)} weak spots")
        return qc
