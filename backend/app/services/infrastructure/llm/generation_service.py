"""
Generation Service

Async front door to the text generation backend used by the Scorer,
Analyst, Architect, Writer, QC and Optimizer stages.

Responsibilities:
- Lazy Gemini client management (no client until the first call)
- Per-stage model selection
- Retry with exponential backoff
- Token usage tracking
- JSON extraction from free-text responses
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config.models import get_model_config
from app.core import get_logger
from app.core.exceptions import GenerationServiceError
from app.services.infrastructure.parsing import parse_json_object
from .cost_tracker import CostTracker, track_cost_safely
from .gemini.client import GenerationConfig, create_client

logger = get_logger(__name__, component="generation_service")


@dataclass
class PromptConfig:
    """Configuration for a prompt execution"""
    max_output_tokens: Optional[int] = None  # If None, uses the step's model config
    temperature: Optional[float] = None
    max_retries: int = 3
    timeout: Optional[float] = 120.0
    response_format: str = "json"  # "text" or "json"


@dataclass
class GenerationResult:
    success: bool
    text: str = ""
    parsed_json: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)


class GenerationService:
    """
    Centralized access to the generation backend.

    ``generate`` never raises for backend errors; it returns a failed
    GenerationResult after the retries are exhausted so the calling stage
    can turn it into an operational failure.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Any = None,
        cost_tracker: Optional[CostTracker] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY")
        self._client = client
        self.cost_tracker = cost_tracker or CostTracker()
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise GenerationServiceError("Generation service API key is not configured")
            self._client = create_client(self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        step: str,
        config: Optional[PromptConfig] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> GenerationResult:
        """
        Generate a response for one pipeline step.

        Args:
            prompt: The prompt text
            step: Model config key (e.g. "scoring", "writing")
            config: Optional prompt configuration
            context: Extra fields for log records (item_id, stage, ...)

        Returns:
            GenerationResult; ``parsed_json`` is None when JSON was requested
            but the response did not contain a parsable object
        """
        config = config or PromptConfig()
        model_config = get_model_config(step)
        model_name = model_config.model_name
        gen_config = GenerationConfig(
            temperature=config.temperature if config.temperature is not None else model_config.temperature,
            max_output_tokens=config.max_output_tokens or model_config.max_output_tokens,
            response_mime_type="application/json" if config.response_format == "json" else None,
        )
        log_extra = {"step": step, "model": model_name, **(context or {})}

        try:
            client = self._get_client()
        except GenerationServiceError as e:
            return GenerationResult(success=False, error=str(e))

        last_error = "unknown error"
        for attempt in range(config.max_retries):
            try:
                call = asyncio.to_thread(
                    client.generate_content,
                    model=model_name,
                    contents=prompt,
                    config=gen_config,
                )
                response = await (asyncio.wait_for(call, timeout=config.timeout) if config.timeout else call)

                usage = track_cost_safely(self.cost_tracker, model_name, getattr(response, "usage_metadata", None))
                text = getattr(response, "text", None) or ""
                result = GenerationResult(success=True, text=text, usage=usage)
                if config.response_format == "json":
                    result.parsed_json = parse_json_object(text)
                    if result.parsed_json is None:
                        logger.warning("Response contained no parsable JSON", extra={
                            **log_extra, "response_preview": text[:200],
                        })
                logger.debug("Generation succeeded", extra={**log_extra, "attempt": attempt + 1, **usage})
                return result

            except asyncio.TimeoutError:
                last_error = "Request timed out"
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"

            logger.warning("Generation attempt failed", extra={
                **log_extra, "attempt": attempt + 1, "error": last_error,
            })
            if attempt < config.max_retries - 1:
                await self._sleep(2 ** attempt)

        logger.error("Generation failed after retries", extra={**log_extra, "error": last_error})
        return GenerationResult(
            success=False,
            error=f"Failed after {config.max_retries} attempts: {last_error}",
        )
