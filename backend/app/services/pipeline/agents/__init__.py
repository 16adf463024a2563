"""
Stage agents, one per pipeline stage:

    1 Scout -> 2 Scorer -> 3 Analyst -> 4 Architect -> 5 Writer
    -> 6 Quality Control <-> 7 Optimizer -> 8 Gate -> 9 Delivery
"""

from .base import AgentContext, AgentResult, GenerationAgent, StageAgent, ValidationResult
from .scout import ScoutAgent, ScoutInput, ScoutOutput, passes_filters
from .scorer import ScorerAgent, ScorerInput
from .analyst import AnalystAgent, AnalystInput
from .architect import ArchitectAgent, ArchitectInput
from .writer import WriterAgent, WriterInput, build_guidance, changed_untouched_scenes
from .qc import QCAgent, QCInput
from .optimizer import OptimizerAgent, OptimizerInput
from .gate import GateAgent, GateInput, decide_gate
from .delivery import DeliveryAgent, DeliveryInput

__all__ = [
    "AgentContext",
    "AgentResult",
    "GenerationAgent",
    "StageAgent",
    "ValidationResult",
    "ScoutAgent",
    "ScoutInput",
    "ScoutOutput",
    "passes_filters",
    "ScorerAgent",
    "ScorerInput",
    "AnalystAgent",
    "AnalystInput",
    "ArchitectAgent",
    "ArchitectInput",
    "WriterAgent",
    "WriterInput",
    "build_guidance",
    "changed_untouched_scenes",
    "QCAgent",
    "QCInput",
    "OptimizerAgent",
    "OptimizerInput",
    "GateAgent",
    "GateInput",
    "decide_gate",
    "DeliveryAgent",
    "DeliveryInput",
]
