"""
Delivery (stage 9) - turns a gated run into a reviewable script.

FAIL decisions never create or touch a script record. A first run creates
a pending script; a revision run updates the parent's script and appends a
version row.
"""

from dataclasses import dataclass
from typing import Optional

from app.models import (
    ArchitectureData,
    AnalysisData,
    DeliveryData,
    GateData,
    GateDecision,
    QCData,
    RevisionContext,
    ScriptData,
    SourceData,
)
from app.services.infrastructure.storage import AuditLogRepository, ScriptRepository, SettingsRepository
from .base import AgentContext, StageAgent, ValidationResult


@dataclass
class DeliveryInput:
    item_id: str
    source: SourceData
    analysis: AnalysisData
    architecture: ArchitectureData
    script: ScriptData
    qc: QCData
    gate: GateData
    revision: Optional[RevisionContext] = None


class DeliveryAgent(StageAgent[DeliveryInput, DeliveryData]):
    stage = 9
    name = "Delivery"

    def __init__(self, scripts: ScriptRepository, settings: SettingsRepository, audit: AuditLogRepository):
        self.scripts = scripts
        self.settings = settings
        self.audit = audit

    def validate(self, data: DeliveryInput) -> ValidationResult:
        if data.gate is None:
            return ValidationResult.fail("Gate decision required")
        if data.script is None or data.qc is None:
            return ValidationResult.fail("Script and QC result required")
        return ValidationResult.ok()

    async def execute(self, data: DeliveryInput, context: AgentContext) -> DeliveryData:
        gate = data.gate

        if gate.decision is GateDecision.FAIL:
            self.emit_thinking(context, "Script failed the gate, recording the rejection")
            self.settings.increment(context.user_id, "total_failed")
            self.audit.append(context.user_id, "item_failed", data.item_id, {
                "reason": gate.reason,
                "final_score": gate.final_score,
                "is_revision": data.revision is not None,
            })
            return DeliveryData(script_id=None, delivered=False, decision=gate.decision)

        if data.revision is not None:
            return self._deliver_revision(data, context)

        self.emit_thinking(context, f"Creating script \"{data.analysis.main_topic[:40]}\"")
        script = self.scripts.create(
            user_id=context.user_id,
            item_id=data.item_id,
            source_type=data.source.type,
            source_item_id=data.source.item_id,
            title=data.analysis.main_topic,
            scenes=data.script.scenes,
            full_script=data.script.full_script,
            format_id=data.architecture.format_id,
            format_name=data.architecture.format_name,
            estimated_duration=data.script.estimated_duration,
            initial_score=data.qc.overall_score,
            final_score=gate.final_score,
            hook_score=data.qc.hook_score,
            structure_score=data.qc.structure_score,
            emotional_score=data.qc.emotional_score,
            cta_score=data.qc.cta_score,
            gate_decision=gate.decision,
            gate_confidence=gate.confidence,
        )
        self.settings.increment(context.user_id, "total_passed")
        self.audit.append(context.user_id, "script_created", data.item_id, {
            "script_id": script.id,
            "decision": gate.decision.value,
            "final_score": gate.final_score,
        })
        self.emit_thinking(context, f"Script ready! Score {gate.final_score}/100, format {data.architecture.format_name}")
        return DeliveryData(script_id=script.id, delivered=True, decision=gate.decision)

    def _deliver_revision(self, data: DeliveryInput, context: AgentContext) -> DeliveryData:
        revision = data.revision
        gate = data.gate
        qc = data.qc
        script_id = revision.previous_script_id

        self.emit_thinking(context, f"Updating script after revision (attempt {revision.attempt})")
        self.scripts.record_revision(
            script_id,
            version_fields={
                "version_number": revision.attempt,
                "scenes": data.script.scenes,
                "full_script": data.script.full_script,
                "final_score": gate.final_score,
                "hook_score": qc.hook_score,
                "structure_score": qc.structure_score,
                "emotional_score": qc.emotional_score,
                "cta_score": qc.cta_score,
                "feedback": revision.notes,
                "selected_scene_ids": revision.selected_scene_ids,
            },
            scenes=data.script.scenes,
            full_script=data.script.full_script,
            estimated_duration=data.script.estimated_duration,
            initial_score=qc.overall_score,
            final_score=gate.final_score,
            hook_score=qc.hook_score,
            structure_score=qc.structure_score,
            emotional_score=qc.emotional_score,
            cta_score=qc.cta_score,
            gate_decision=gate.decision,
            gate_confidence=gate.confidence,
        )
        self.audit.append(context.user_id, "script_revised", data.item_id, {
            "script_id": script_id,
            "attempt": revision.attempt,
            "decision": gate.decision.value,
            "final_score": gate.final_score,
        })
        self.emit_thinking(context, f"Script updated! Score {gate.final_score}/100")
        return DeliveryData(script_id=script_id, delivered=True, decision=gate.decision)
