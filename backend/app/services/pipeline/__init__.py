"""
Content pipeline - stage agents, QC loop, orchestration, revisions and
learning from review outcomes.
"""

from .events import DurableEventLog, EventBus, UserEventStream
from .qc_loop import QCLoop, QCLoopResult, apply_optimization
from .orchestrator import Orchestrator, PipelineAgents, ProcessResult
from .revision import RevisionProcessor
from .learning import LearningService

__all__ = [
    "EventBus",
    "DurableEventLog",
    "UserEventStream",
    "QCLoop",
    "QCLoopResult",
    "apply_optimization",
    "Orchestrator",
    "PipelineAgents",
    "ProcessResult",
    "RevisionProcessor",
    "LearningService",
]
