"""
Stage agent base classes.

An agent runs one pipeline stage. ``StageAgent.process`` wraps the stage's
own ``execute`` with the behaviour every stage shares:

    validate -> stage:started -> execute -> stage:completed | stage:failed

Operational failures (exceptions inside ``execute``) are converted to a
failed AgentResult; they never propagate to the orchestrator. The one
exception is ItemCancelledError, which always propagates so a cancelled run
stops immediately.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from app.config.constants import STAGE_COSTS, STAGE_NAMES
from app.core import get_logger
from app.core.exceptions import ItemCancelledError, StageFailedError
from app.models import StageHistoryEntry
from app.services.infrastructure.llm import GenerationService, PromptConfig, format_prompt
from ..events import EventBus

logger = get_logger(__name__, component="stage_agent")

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


@dataclass
class AgentResult(Generic[OutputT]):
    success: bool
    data: Optional[OutputT] = None
    error: Optional[str] = None
    cost: float = 0.0
    duration_ms: int = 0


@dataclass
class AgentContext:
    """Who a stage runs for, and where its events and history go."""
    user_id: str
    item_id: str
    bus: EventBus
    history: Optional[Callable[[StageHistoryEntry], None]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class StageAgent(ABC, Generic[InputT, OutputT]):
    """Base class for all nine stage agents."""

    stage: int = 0
    name: str = ""
    uses_generation: bool = False

    @property
    def estimated_cost(self) -> float:
        return STAGE_COSTS.get(self.stage, 0.0)

    @property
    def stage_name(self) -> str:
        return STAGE_NAMES.get(self.stage, self.name)

    @abstractmethod
    def validate(self, data: InputT) -> ValidationResult:
        """Check the input before anything runs or is emitted."""

    @abstractmethod
    async def execute(self, data: InputT, context: AgentContext) -> OutputT:
        """Stage logic; raise to signal an operational failure."""

    def _precheck(self) -> Optional[str]:
        return None

    async def process(self, data: InputT, context: AgentContext) -> AgentResult[OutputT]:
        validation = self.validate(data)
        if not validation.valid:
            logger.warning("Stage input rejected", extra={
                "stage": self.stage,
                "agent": self.name,
                "item_id": context.item_id,
                "error": validation.error,
            })
            return AgentResult(success=False, error=validation.error or "Validation failed")

        precheck_error = self._precheck()
        if precheck_error:
            return AgentResult(success=False, error=precheck_error)

        started_at = datetime.now()
        start = time.perf_counter()
        context.bus.stage_started(context.user_id, context.item_id, self.stage)
        logger.info(f"{self.name} started", extra={"stage": self.stage, "item_id": context.item_id})

        try:
            output = await self.execute(data, context)
        except ItemCancelledError:
            raise
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            error = str(e) or type(e).__name__
            context.bus.stage_failed(context.user_id, context.item_id, self.stage, error)
            logger.error(f"{self.name} failed", extra={
                "stage": self.stage,
                "item_id": context.item_id,
                "error": error,
                "duration_ms": duration_ms,
            }, exc_info=not isinstance(e, StageFailedError))
            self._record_history(context, started_at, duration_ms, success=False, error=error)
            return AgentResult(success=False, error=error, duration_ms=duration_ms)

        duration_ms = int((time.perf_counter() - start) * 1000)
        context.bus.stage_completed(context.user_id, context.item_id, self.stage, self._summarize(output))
        logger.info(f"{self.name} completed", extra={
            "stage": self.stage,
            "item_id": context.item_id,
            "duration_ms": duration_ms,
        })
        self._record_history(context, started_at, duration_ms, success=True)
        return AgentResult(success=True, data=output, cost=self._result_cost(), duration_ms=duration_ms)

    def _result_cost(self) -> float:
        return 0.0

    @staticmethod
    def _summarize(output: Any) -> Any:
        if hasattr(output, "model_dump"):
            return output.model_dump(mode="json")
        return output

    def _record_history(self, context: AgentContext, started_at: datetime, duration_ms: int,
                        success: bool, error: Optional[str] = None) -> None:
        if context.history is None:
            return
        context.history(StageHistoryEntry(
            stage=self.stage,
            agent_name=self.name,
            started_at=started_at,
            completed_at=started_at + timedelta(milliseconds=duration_ms),
            success=success,
            error=error,
        ))

    # === Event helpers ===

    def emit_thinking(self, context: AgentContext, thinking: str) -> None:
        context.bus.stage_thinking(context.user_id, context.item_id, self.stage, thinking)

    def emit_progress(self, context: AgentContext, progress: float, message: Optional[str] = None) -> None:
        context.bus.stage_progress(context.user_id, context.item_id, self.stage, progress, message)

    def emit_message(self, context: AgentContext, message: str) -> None:
        context.bus.agent_message(context.user_id, context.item_id, self.stage, message)


class GenerationAgent(StageAgent[InputT, OutputT]):
    """
    Stage backed by the generation service.

    Fails without running when no service is configured; a successful run
    costs the stage's estimated cost.
    """

    uses_generation = True
    step: str = ""
    prompt_name: str = ""

    def __init__(self, generation: Optional[GenerationService] = None):
        self.generation = generation

    def _precheck(self) -> Optional[str]:
        if self.generation is None or not self.generation.is_configured:
            return "Generation service is not configured"
        return None

    def _result_cost(self) -> float:
        return self.estimated_cost

    async def generate_json(self, context: AgentContext, prompt_config: Optional[PromptConfig] = None,
                            **fields: Any) -> Optional[Dict[str, Any]]:
        """
        Render this stage's prompt and return the parsed JSON object.

        Returns None when the response had no parsable JSON (the caller uses
        its fallback). A failed generation call raises StageFailedError.
        """
        prompt = format_prompt(self.prompt_name, **fields)
        result = await self.generation.generate(
            prompt,
            self.step,
            config=prompt_config,
            context={"item_id": context.item_id, "stage": self.stage},
        )
        if not result.success:
            raise StageFailedError(self.stage, result.error or "Generation failed")
        if result.parsed_json is None:
            self.emit_thinking(context, "Response could not be parsed, using defaults")
        return result.parsed_json
