"""
Pydantic models for pipeline records, stage outputs and API schemas
"""

from .status import (
    ItemStatus,
    SourceType,
    ScriptStatus,
    GateDecision,
    Severity,
    RejectionCategory,
    EventType,
)
from .stages import (
    SourceData,
    ScoreBreakdown,
    ScoreData,
    AnalysisData,
    TimingTemplate,
    ArchitectureData,
    Scene,
    ScriptData,
    WeakSpot,
    QCData,
    ScriptChange,
    OptimizationData,
    GateData,
    DeliveryData,
    PreviousVersion,
    RevisionContext,
    FORMATS,
)
from .items import PipelineItem, StageHistoryEntry, STAGE_SLOTS, slot_for_stage
from .scripts import GeneratedScript, ScriptVersion
from .settings import ConveyorSettings, WritingProfile, FeedbackEntry
from .events import EventData, PipelineEvent, LoggedEvent
from .api import (
    ProcessItemRequest,
    RejectScriptRequest,
    ReviseScriptRequest,
    SettingsUpdateRequest,
    ProcessResultResponse,
    TriggerResponse,
    ReviseScriptResponse,
    UserStatsResponse,
    EventLogResponse,
)
