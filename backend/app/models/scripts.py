"""
Generated script records

A GeneratedScript is created by Delivery on the first PASS/NEEDS_REVIEW
decision and updated in place after each accepted revision; every revision
also appends a ScriptVersion row.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .stages import Scene
from .status import GateDecision, RejectionCategory, ScriptStatus, SourceType


class GeneratedScript(BaseModel):
    id: str
    user_id: str
    item_id: str
    source_type: SourceType
    source_item_id: str
    title: str
    scenes: List[Scene]
    full_script: str
    format_id: str
    format_name: str
    estimated_duration: int

    initial_score: int
    final_score: int
    hook_score: int
    structure_score: int
    emotional_score: int
    cta_score: int
    gate_decision: GateDecision
    gate_confidence: float

    status: ScriptStatus = ScriptStatus.PENDING
    revision_count: int = 0
    revision_notes: Optional[str] = None
    rejection_category: Optional[RejectionCategory] = None
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class ScriptVersion(BaseModel):
    id: str
    script_id: str
    version_number: int
    title: str
    scenes: List[Scene]
    full_script: str
    final_score: int
    hook_score: int
    structure_score: int
    emotional_score: int
    cta_score: int
    feedback: Optional[str] = None
    selected_scene_ids: Optional[List[int]] = None
    created_at: datetime = Field(default_factory=datetime.now)
