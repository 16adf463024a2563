"""
Gate (stage 8) - final PASS / NEEDS_REVIEW / FAIL decision.

``decide_gate`` is a pure function of the last QC result, the last
optimization (for the iteration count) and the user's approval rate.
"""

from dataclasses import dataclass
from typing import Optional

from app.config.constants import DEFAULT_APPROVAL_RATE
from app.models import GateData, GateDecision, OptimizationData, QCData
from .base import AgentContext, StageAgent, ValidationResult


def decide_gate(qc: QCData, optimization: Optional[OptimizationData] = None,
                approval_rate: Optional[float] = None) -> GateData:
    rate = DEFAULT_APPROVAL_RATE if approval_rate is None else approval_rate
    final = qc.overall_score
    hook = qc.hook_score
    critical = qc.has_critical
    iterations = optimization.iteration_number if optimization else 0

    def gate(decision: GateDecision, confidence: float, reason: str) -> GateData:
        return GateData(
            decision=decision,
            reason=reason,
            confidence=confidence,
            final_score=final,
            passed_after_iterations=iterations,
        )

    if final >= 85 and not critical and hook >= 80:
        return gate(GateDecision.PASS, 0.95, f"Excellent score ({final}), strong hook ({hook}), no critical issues")
    if final >= 75 and not critical and rate > 0.7:
        return gate(GateDecision.PASS, 0.80, f"Good score ({final}), high approval rate ({round(rate * 100)}%)")
    if final >= 75 and not critical:
        return gate(GateDecision.NEEDS_REVIEW, 0.70, f"Score {final} above threshold, reviewer decision needed")
    if final >= 70 and not critical:
        return gate(GateDecision.NEEDS_REVIEW, 0.60, f"Borderline score {final}, manual review recommended")
    if final >= 65 and critical:
        return gate(GateDecision.NEEDS_REVIEW, 0.50, f"Score {final} acceptable but critical issues remain")

    reasons = []
    if final < 65:
        reasons.append(f"score {final} below 65")
    if critical and final < 65:
        reasons.append("critical issues")
    if hook < 50:
        reasons.append(f"weak hook ({hook})")
    if not reasons:
        reasons.append(f"score {final} below review threshold 70")
    return gate(GateDecision.FAIL, 0.90, f"Does not meet standards: {', '.join(reasons)}")


@dataclass
class GateInput:
    qc: QCData
    optimization: Optional[OptimizationData] = None
    approval_rate: Optional[float] = None


class GateAgent(StageAgent[GateInput, GateData]):
    stage = 8
    name = "Gate"

    def validate(self, data: GateInput) -> ValidationResult:
        if data.qc is None:
            return ValidationResult.fail("QC result required")
        return ValidationResult.ok()

    async def execute(self, data: GateInput, context: AgentContext) -> GateData:
        gate = decide_gate(data.qc, data.optimization, data.approval_rate)
        self.emit_thinking(context, f"{gate.decision.value} ({gate.confidence:.0%}): {gate.reason}")
        return gate
