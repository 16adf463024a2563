"""
Pipeline item record

A PipelineItem is the persisted progress of one source item through the
stages. Stage outputs live in dedicated slots; ``STAGE_SLOTS`` is the single
mapping from stage number to slot and is checked at import time so an
unmapped stage fails loudly instead of silently dropping data.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field

from app.config.constants import TOTAL_STAGES
from app.core.exceptions import UnknownStageError
from .stages import (
    AnalysisData,
    ArchitectureData,
    GateData,
    OptimizationData,
    QCData,
    RevisionContext,
    ScoreData,
    ScriptData,
    SourceData,
)
from .status import ItemStatus, SourceType


# stage -> (slot attribute, payload model). Delivery (9) writes the script
# record instead of a slot.
STAGE_SLOTS: Dict[int, tuple[str, Type[BaseModel]]] = {
    1: ("source_data", SourceData),
    2: ("score_data", ScoreData),
    3: ("analysis_data", AnalysisData),
    4: ("architecture_data", ArchitectureData),
    5: ("script_data", ScriptData),
    6: ("qc_data", QCData),
    7: ("optimization_data", OptimizationData),
    8: ("gate_data", GateData),
}

SLOTLESS_STAGES = frozenset({9})

# Stages copied verbatim into a revision fork
FORKED_STAGES = (1, 2, 3, 4)


def _check_stage_mapping() -> None:
    covered = set(STAGE_SLOTS) | SLOTLESS_STAGES
    expected = set(range(1, TOTAL_STAGES + 1))
    if covered != expected:
        raise RuntimeError(f"Stage slot mapping incomplete: missing {sorted(expected - covered)}")


_check_stage_mapping()


def slot_for_stage(stage: int) -> str:
    """Slot attribute that stores ``stage``'s output."""
    try:
        return STAGE_SLOTS[stage][0]
    except KeyError:
        raise UnknownStageError(f"Stage {stage} has no output slot") from None


class StageHistoryEntry(BaseModel):
    """One append-only audit row per stage execution"""
    stage: int
    agent_name: str
    started_at: datetime
    completed_at: datetime
    success: bool
    error: Optional[str] = None


class PipelineItem(BaseModel):
    id: str
    user_id: str
    source_type: SourceType
    source_item_id: str
    status: ItemStatus = ItemStatus.PROCESSING
    current_stage: int = 1

    source_data: Optional[SourceData] = None
    score_data: Optional[ScoreData] = None
    analysis_data: Optional[AnalysisData] = None
    architecture_data: Optional[ArchitectureData] = None
    script_data: Optional[ScriptData] = None
    qc_data: Optional[QCData] = None
    optimization_data: Optional[OptimizationData] = None
    gate_data: Optional[GateData] = None

    stage_history: List[StageHistoryEntry] = Field(default_factory=list)
    revision_context: Optional[RevisionContext] = None
    parent_item_id: Optional[str] = None
    script_id: Optional[str] = None

    total_cost: float = 0.0
    retry_count: int = 0
    error_stage: Optional[int] = None
    error_message: Optional[str] = None
    # True when the failure was a content rejection (score or analysis), not an error
    rejected: bool = False
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_revision(self) -> bool:
        return self.revision_context is not None

    def stage_output(self, stage: int) -> Optional[BaseModel]:
        return getattr(self, slot_for_stage(stage))

    def forked_slots(self) -> Dict[str, Any]:
        """JSON-ready copy of the stage 1-4 slots, used when forking a revision."""
        return {
            slot_for_stage(stage): (
                self.stage_output(stage).model_dump(mode="json")
                if self.stage_output(stage) is not None
                else None
            )
            for stage in FORKED_STAGES
        }
