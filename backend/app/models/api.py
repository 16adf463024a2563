"""
API schemas for conveyor and script review endpoints
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from .stages import SourceData
from .status import RejectionCategory, SourceType


# === Request Models ===

class ProcessItemRequest(BaseModel):
    """Run one specific source item through the pipeline"""
    source: SourceData


class RejectScriptRequest(BaseModel):
    category: RejectionCategory = RejectionCategory.OTHER
    reason: Optional[str] = None


class ReviseScriptRequest(BaseModel):
    feedback: str = Field(min_length=1)
    selected_scene_ids: Optional[List[int]] = None


class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields are left unchanged"""
    enabled: Optional[bool] = None
    source_types: Optional[List[SourceType]] = None
    source_ids: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    exclude_keywords: Optional[List[str]] = None
    max_age_days: Optional[int] = Field(default=None, ge=1)
    daily_limit: Optional[int] = Field(default=None, ge=0)
    monthly_budget_limit: Optional[float] = Field(default=None, ge=0)
    min_score_threshold: Optional[int] = Field(default=None, ge=0, le=100)
    duration_range: Optional[List[int]] = Field(default=None, min_length=2, max_length=2)
    style_preferences: Optional[Dict[str, str]] = None
    custom_guidelines: Optional[str] = None
    script_examples: Optional[List[str]] = None


# === Response Models ===

class ProcessResultResponse(BaseModel):
    success: bool
    item_id: Optional[str] = None
    script_id: Optional[str] = None
    error: Optional[str] = None
    rejected: bool = False


class TriggerResponse(BaseModel):
    user_id: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    stopped_reason: Optional[str] = None
    results: List[ProcessResultResponse] = []


class ReviseScriptResponse(BaseModel):
    script_id: str
    item_id: Optional[str] = None
    attempt: int
    status: str


class UserStatsResponse(BaseModel):
    user_id: str
    items_processed_today: int
    daily_limit: int
    current_month_cost: float
    monthly_budget_limit: float
    total_processed: int
    total_passed: int
    total_failed: int
    total_approved: int
    total_rejected: int
    approval_rate: Optional[float] = None
    learned_threshold: Optional[int] = None
    items_by_status: Dict[str, int] = {}


class EventLogResponse(BaseModel):
    item_id: str
    events: List[Dict[str, Any]]
