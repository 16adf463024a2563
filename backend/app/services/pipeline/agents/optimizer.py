"""
Optimizer (stage 7) - rewrites the scenes QC flagged as major or critical.
"""

from dataclasses import dataclass

from app.config.constants import MAX_QC_ITERATIONS
from app.models import OptimizationData, QCData, ScriptData
from .base import AgentContext, GenerationAgent, ValidationResult


@dataclass
class OptimizerInput:
    script: ScriptData
    qc: QCData
    iteration: int = 1


class OptimizerAgent(GenerationAgent[OptimizerInput, OptimizationData]):
    stage = 7
    name = "Optimizer"
    step = "optimization"
    prompt_name = "OPTIMIZE_SCRIPT"

    def validate(self, data: OptimizerInput) -> ValidationResult:
        if data.script is None or data.qc is None:
            return ValidationResult.fail("Script and QC result required")
        if data.iteration < 1 or data.iteration > MAX_QC_ITERATIONS:
            return ValidationResult.fail(f"Iteration {data.iteration} outside 1..{MAX_QC_ITERATIONS}")
        return ValidationResult.ok()

    async def execute(self, data: OptimizerInput, context: AgentContext) -> OptimizationData:
        if data.qc.passed:
            self.emit_thinking(context, "QC passed, nothing to optimize")
            return OptimizationData.unchanged(data.script, data.iteration)

        spots = data.qc.actionable_weak_spots()
        if not spots:
            self.emit_thinking(context, "No major or critical issues to fix")
            return OptimizationData.unchanged(data.script, data.iteration)

        self.emit_thinking(context, f"Fixing {len(spots)} issues (iteration {data.iteration})")
        raw = await self.generate_json(
            context,
            scenes="\n".join(
                f"Scene {scene.id} [{scene.label}] {scene.start}-{scene.end}s: {scene.text}"
                for scene in data.script.scenes
            ),
            issues="\n".join(
                f"- Scene {spot.scene_id} [{spot.severity.value}/{spot.area}]: {spot.issue}"
                + (f" -> {spot.suggestion}" if spot.suggestion else "")
                for spot in spots
            ),
        )
        if raw is None:
            return OptimizationData.unchanged(data.script, data.iteration)

        optimization = OptimizationData.from_response(raw, data.script, data.iteration)
        self.emit_thinking(context, f"{len(optimization.changes)} changes applied")
        return optimization
