"""
Pipeline orchestrator - runs one item through the stages.

Fresh run:     Scorer(2) -> Analyst(3) -> Architect(4) -> Writer(5)
               -> QC/Optimize loop (6<->7) -> Gate(8) -> Delivery(9)
Revision run:  Writer(5) -> ... -> Delivery(9), using the stage 1-4 data
               copied from the parent item

Scout (1) runs once per batch, upstream of this class.

Failures never leave the orchestrator: every path ends in a ProcessResult.
Content rejections (low score, avoided topic) and operational failures both
mark the item failed with the failing stage; a cancelled item simply stops
and nothing further is persisted.
"""

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel

from app.core import clear_context, get_logger, set_item_context
from app.core.exceptions import (
    ContentRejectedError,
    InvalidStateError,
    ItemCancelledError,
    StageFailedError,
)
from app.models import (
    AnalysisData,
    ArchitectureData,
    ConveyorSettings,
    GateDecision,
    ItemStatus,
    PipelineItem,
    RevisionContext,
    Scene,
    SourceData,
    WritingProfile,
)
from app.services.infrastructure.llm import GenerationService
from app.services.infrastructure.storage import (
    AuditLogRepository,
    ItemRepository,
    ScriptRepository,
    SettingsRepository,
    WritingProfileRepository,
)
from .agents import (
    AgentContext,
    AgentResult,
    AnalystAgent,
    AnalystInput,
    ArchitectAgent,
    ArchitectInput,
    DeliveryAgent,
    DeliveryInput,
    GateAgent,
    GateInput,
    OptimizerAgent,
    QCAgent,
    ScorerAgent,
    ScorerInput,
    WriterAgent,
    WriterInput,
)
from .events import EventBus
from .qc_loop import QCLoop

logger = get_logger(__name__, component="orchestrator")

SCORE_REJECTION = "Score below threshold"
ANALYSIS_REJECTION = "Topic avoided or insufficient facts"


@dataclass
class ProcessResult:
    success: bool
    item_id: Optional[str] = None
    script_id: Optional[str] = None
    error: Optional[str] = None
    stage: Optional[int] = None
    rejected: bool = False
    decision: Optional[GateDecision] = None


@dataclass
class PipelineAgents:
    """The per-item stage agents (Scout runs separately, per batch)."""
    scorer: ScorerAgent
    analyst: AnalystAgent
    architect: ArchitectAgent
    writer: WriterAgent
    qc: QCAgent
    optimizer: OptimizerAgent
    gate: GateAgent
    delivery: DeliveryAgent

    @classmethod
    def build(cls, generation: Optional[GenerationService], scripts: ScriptRepository,
              settings: SettingsRepository, audit: AuditLogRepository) -> "PipelineAgents":
        return cls(
            scorer=ScorerAgent(generation),
            analyst=AnalystAgent(generation),
            architect=ArchitectAgent(generation),
            writer=WriterAgent(generation),
            qc=QCAgent(generation),
            optimizer=OptimizerAgent(generation),
            gate=GateAgent(),
            delivery=DeliveryAgent(scripts, settings, audit),
        )


class Orchestrator:
    def __init__(
        self,
        items: ItemRepository,
        scripts: ScriptRepository,
        settings: SettingsRepository,
        profiles: WritingProfileRepository,
        bus: EventBus,
        agents: PipelineAgents,
    ):
        self.items = items
        self.scripts = scripts
        self.settings = settings
        self.profiles = profiles
        self.bus = bus
        self.agents = agents
        self.qc_loop = QCLoop(agents.qc, agents.optimizer)

    # === Public entry points ===

    async def process_item(self, user_id: str, source: SourceData,
                           settings: Optional[ConveyorSettings] = None) -> ProcessResult:
        """Create a new item for ``source`` and run it from stage 2."""
        item = self.items.create(user_id, source)
        return await self._run_fresh(item, source, settings)

    async def rerun_item(self, item_id: str) -> ProcessResult:
        """Run an item that was reset for retry, from its stored source data."""
        item = self.items.get(item_id)
        if item is None:
            return ProcessResult(success=False, item_id=item_id, error="Item not found")
        if item.source_data is None:
            return self._fail(item, 1, "Item has no source data")
        return await self._run_fresh(item, item.source_data, None)

    async def process_revision_item(self, item_id: str) -> ProcessResult:
        """Run a forked revision item through stages 5-9."""
        item = self.items.get(item_id)
        if item is None:
            return ProcessResult(success=False, item_id=item_id, error="Item not found")
        if item.revision_context is None or item.parent_item_id is None:
            return ProcessResult(success=False, item_id=item_id, error="Item is not a revision item")
        return await self._guarded(item, self._run_revision(item))

    # === Runs ===

    async def _run_fresh(self, item: PipelineItem, source: SourceData,
                         settings: Optional[ConveyorSettings]) -> ProcessResult:
        async def run() -> ProcessResult:
            self._save(item.id, 1, source)
            self.bus.item_started(item.user_id, item.id, source.title)
            return await self._run_stages(item, source, settings)

        return await self._guarded(item, run())

    async def _guarded(self, item: PipelineItem, run) -> ProcessResult:
        set_item_context(item.user_id, item.id)
        try:
            return await run
        except ItemCancelledError:
            logger.info("Item cancelled, run stopped", extra={"item_id": item.id})
            return ProcessResult(success=False, item_id=item.id, error="cancelled")
        except StageFailedError as e:
            return self._fail(item, e.stage, e.message, rejected=isinstance(e, ContentRejectedError))
        except Exception as e:
            logger.error("Pipeline error", extra={"item_id": item.id, "error": str(e)}, exc_info=True)
            return self._fail(item, None, f"{type(e).__name__}: {e}")
        finally:
            clear_context()

    async def _run_stages(self, item: PipelineItem, source: SourceData,
                          settings: Optional[ConveyorSettings]) -> ProcessResult:
        settings = settings or self.settings.get_or_create(item.user_id)
        context = self._context(item)

        score = self._require(await self.agents.scorer.process(
            ScorerInput(source=source, threshold=settings.score_threshold), context
        ), self.agents.scorer.stage)
        self._save(item.id, 2, score.data, score.cost)
        if not score.data.passed:
            raise ContentRejectedError(2, SCORE_REJECTION)

        analysis = self._require(await self.agents.analyst.process(
            AnalystInput(source=source, avoided_topics=settings.avoided_topics), context
        ), self.agents.analyst.stage)
        self._save(item.id, 3, analysis.data, analysis.cost)
        if not analysis.data.passed:
            raise ContentRejectedError(3, ANALYSIS_REJECTION)

        architecture = self._require(await self.agents.architect.process(
            ArchitectInput(
                source=source,
                analysis=analysis.data,
                duration_range=settings.duration_range,
                preferred_formats=settings.preferred_formats,
            ), context
        ), self.agents.architect.stage)
        self._save(item.id, 4, architecture.data, architecture.cost)

        return await self._write_and_deliver(item, context, settings, source, analysis.data, architecture.data)

    async def _run_revision(self, item: PipelineItem) -> ProcessResult:
        revision = item.revision_context
        if item.source_data is None or item.analysis_data is None or item.architecture_data is None:
            raise StageFailedError(5, "Revision item is missing inherited stage data")

        settings = self.settings.get_or_create(item.user_id)
        previous = self.scripts.get(revision.previous_script_id)
        context = self._context(item)
        logger.info("Revision run started", extra={
            "item_id": item.id,
            "parent_item_id": item.parent_item_id,
            "attempt": revision.attempt,
        })
        return await self._write_and_deliver(
            item, context, settings, item.source_data, item.analysis_data, item.architecture_data,
            revision=revision,
            previous_scenes=list(previous.scenes) if previous else [],
        )

    async def _write_and_deliver(
        self,
        item: PipelineItem,
        context: AgentContext,
        settings: ConveyorSettings,
        source: SourceData,
        analysis: AnalysisData,
        architecture: ArchitectureData,
        revision: Optional[RevisionContext] = None,
        previous_scenes: Optional[List[Scene]] = None,
    ) -> ProcessResult:
        written = self._require(await self.agents.writer.process(
            WriterInput(
                source=source,
                analysis=analysis,
                architecture=architecture,
                settings=settings,
                profile=self._writing_profile(item.user_id),
                revision=revision,
                previous_scenes=previous_scenes or [],
            ), context
        ), self.agents.writer.stage)
        self._save(item.id, 5, written.data, written.cost)

        loop = await self.qc_loop.run(
            written.data, architecture, context,
            save_stage=lambda stage, data, cost: self._save(item.id, stage, data, cost),
        )

        gate = self._require(await self.agents.gate.process(
            GateInput(qc=loop.qc, optimization=loop.optimization, approval_rate=settings.approval_rate), context
        ), self.agents.gate.stage)
        self._save(item.id, 8, gate.data, gate.cost)

        # Stage 9 has no slot; check cancellation before it writes anything
        current = self.items.get(item.id)
        if current is not None and current.status is ItemStatus.CANCELLED:
            raise ItemCancelledError(item.id, 9)

        delivery = self._require(await self.agents.delivery.process(
            DeliveryInput(
                item_id=item.id,
                source=source,
                analysis=analysis,
                architecture=architecture,
                script=loop.script,
                qc=loop.qc,
                gate=gate.data,
                revision=revision,
            ), context
        ), self.agents.delivery.stage)

        self.items.complete(item.id, delivery.data.script_id)
        self.bus.item_completed(item.user_id, item.id, {
            "script_id": delivery.data.script_id,
            "decision": gate.data.decision.value,
        })
        logger.info("Item completed", extra={
            "item_id": item.id,
            "script_id": delivery.data.script_id,
            "decision": gate.data.decision.value,
            "delivered": delivery.data.delivered,
        })
        return ProcessResult(
            success=True,
            item_id=item.id,
            script_id=delivery.data.script_id,
            decision=gate.data.decision,
        )

    # === Helpers ===

    def _context(self, item: PipelineItem) -> AgentContext:
        return AgentContext(
            user_id=item.user_id,
            item_id=item.id,
            bus=self.bus,
            history=lambda entry: self.items.append_history(item.id, entry),
        )

    def _save(self, item_id: str, stage: int, data: BaseModel, cost: float = 0.0) -> None:
        self.items.save_stage_data(item_id, stage, data, cost)

    @staticmethod
    def _require(result: AgentResult, stage: int) -> AgentResult:
        if not result.success or result.data is None:
            raise StageFailedError(stage, result.error or f"Stage {stage} failed")
        return result

    def _writing_profile(self, user_id: str) -> Optional[WritingProfile]:
        try:
            return self.profiles.get(user_id)
        except Exception as e:
            logger.warning("Could not load writing profile", extra={"user_id": user_id, "error": str(e)})
            return None

    def _fail(self, item: PipelineItem, stage: Optional[int], message: str, rejected: bool = False) -> ProcessResult:
        try:
            self.items.fail(item.id, stage, message, rejected=rejected)
        except InvalidStateError as e:
            current = self.items.get(item.id)
            if current is not None and current.status is ItemStatus.CANCELLED:
                return ProcessResult(success=False, item_id=item.id, error="cancelled")
            logger.warning("Could not mark item failed", extra={"item_id": item.id, "error": str(e)})
        self.bus.item_failed(item.user_id, item.id, message, stage)
        log = logger.info if rejected else logger.error
        log(f"Item failed at stage {stage}", extra={"item_id": item.id, "reason": message, "rejected": rejected})
        return ProcessResult(success=False, item_id=item.id, error=message, stage=stage, rejected=rejected)
