"""LLM infrastructure - Gemini client, generation service, cost tracking."""

from .generation_service import GenerationService, GenerationResult, PromptConfig
from .cost_tracker import CostTracker, track_cost_safely
from .prompting_engine import format_prompt, get_prompt

__all__ = [
    "GenerationService",
    "GenerationResult",
    "PromptConfig",
    "CostTracker",
    "track_cost_safely",
    "format_prompt",
    "get_prompt",
]
