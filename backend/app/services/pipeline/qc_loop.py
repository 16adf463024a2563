"""
QC / Optimize loop (stages 6 and 7).

QC runs at most MAX_QC_ITERATIONS + 1 times and the Optimizer at most
MAX_QC_ITERATIONS times. The loop stops early when QC passes, when the
Optimizer fails, or when it has nothing to change. Whatever script the loop
ends with goes to the Gate, passed or not.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import BaseModel

from app.config.constants import MAX_QC_ITERATIONS
from app.core import get_logger
from app.core.exceptions import StageFailedError
from app.models import ArchitectureData, OptimizationData, QCData, ScriptData
from .agents import AgentContext, OptimizerAgent, OptimizerInput, QCAgent, QCInput

logger = get_logger(__name__, component="qc_loop")

StageWriter = Callable[[int, BaseModel, float], None]


@dataclass
class QCLoopResult:
    script: ScriptData
    qc: QCData
    optimization: Optional[OptimizationData] = None
    iterations: int = 0
    qc_runs: int = 0


def apply_optimization(script: ScriptData, optimization: OptimizationData) -> ScriptData:
    """The optimized script keeps the original estimated duration."""
    return ScriptData(
        scenes=optimization.improved_scenes,
        full_script=optimization.full_script,
        estimated_duration=script.estimated_duration,
    )


class QCLoop:
    def __init__(self, qc_agent: QCAgent, optimizer_agent: OptimizerAgent,
                 max_iterations: int = MAX_QC_ITERATIONS):
        self.qc_agent = qc_agent
        self.optimizer_agent = optimizer_agent
        self.max_iterations = max_iterations

    async def run(self, script: ScriptData, architecture: Optional[ArchitectureData],
                  context: AgentContext, save_stage: StageWriter) -> QCLoopResult:
        """
        Args:
            script: Writer output
            architecture: Chosen format, passed through to QC
            context: Agent context of the item
            save_stage: Persists (stage, data, cost); raises ItemCancelledError
                when the item was cancelled meanwhile

        Raises:
            StageFailedError: a QC run failed operationally
        """
        current = script
        optimization: Optional[OptimizationData] = None
        iteration = 0
        qc_runs = 0

        while True:
            qc_result = await self.qc_agent.process(
                QCInput(script=current, architecture=architecture, iteration=iteration + 1), context
            )
            qc_runs += 1
            if not qc_result.success:
                raise StageFailedError(self.qc_agent.stage, qc_result.error or "QC failed")
            qc = qc_result.data
            save_stage(self.qc_agent.stage, qc, qc_result.cost)

            if qc.passed or iteration == self.max_iterations:
                break

            opt_result = await self.optimizer_agent.process(
                OptimizerInput(script=current, qc=qc, iteration=iteration + 1), context
            )
            if not opt_result.success:
                logger.warning("Optimizer failed, keeping current script", extra={
                    "item_id": context.item_id,
                    "iteration": iteration + 1,
                    "error": opt_result.error,
                })
                break

            optimization = opt_result.data
            save_stage(self.optimizer_agent.stage, optimization, opt_result.cost)
            if not optimization.needs_reqc:
                break

            current = apply_optimization(current, optimization)
            iteration += 1

        logger.info("QC loop finished", extra={
            "item_id": context.item_id,
            "qc_runs": qc_runs,
            "iterations": iteration,
            "passed": qc.passed,
            "overall_score": qc.overall_score,
        })
        return QCLoopResult(script=current, qc=qc, optimization=optimization, iterations=iteration, qc_runs=qc_runs)
