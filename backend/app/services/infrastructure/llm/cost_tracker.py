"""
Token usage and cost tracking for generation calls.

Stage agents charge a fixed estimated cost per successful call; this
tracker records what the backend actually reported so the estimates can be
checked against real usage in the logs.
"""

from dataclasses import dataclass, field
from threading import Lock
from typing import Dict

from app.core import get_logger

logger = get_logger(__name__, component="cost_tracker")

# USD per 1M tokens (input, output)
MODEL_PRICING: Dict[str, tuple[float, float]] = {
    "gemini-flash-lite-latest": (0.10, 0.40),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-pro": (1.25, 10.00),
}
DEFAULT_PRICING = (0.30, 2.50)


@dataclass
class ModelUsage:
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


@dataclass
class CostTracker:
    usage: Dict[str, ModelUsage] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def track_request(self, model_name: str, input_tokens: int, output_tokens: int) -> float:
        """Record one call and return its computed cost."""
        input_price, output_price = MODEL_PRICING.get(model_name, DEFAULT_PRICING)
        cost = (input_tokens * input_price + output_tokens * output_price) / 1_000_000
        with self._lock:
            entry = self.usage.setdefault(model_name, ModelUsage())
            entry.requests += 1
            entry.input_tokens += input_tokens
            entry.output_tokens += output_tokens
            entry.cost += cost
        return cost

    @property
    def total_cost(self) -> float:
        with self._lock:
            return sum(entry.cost for entry in self.usage.values())

    def summary(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {
                model: {
                    "requests": entry.requests,
                    "input_tokens": entry.input_tokens,
                    "output_tokens": entry.output_tokens,
                    "cost": round(entry.cost, 6),
                }
                for model, entry in self.usage.items()
            }


def track_cost_safely(tracker: CostTracker, model_name: str, usage_metadata) -> Dict[str, int]:
    """Extract token counts from a response's usage metadata and record them."""
    if usage_metadata is None:
        return {}
    usage = {
        "input_tokens": int(getattr(usage_metadata, "prompt_token_count", 0) or 0),
        "output_tokens": int(getattr(usage_metadata, "candidates_token_count", 0) or 0),
        "total_tokens": int(getattr(usage_metadata, "total_token_count", 0) or 0),
    }
    try:
        tracker.track_request(model_name, usage["input_tokens"], usage["output_tokens"])
    except (TypeError, ValueError) as e:
        logger.warning("Could not record token usage", extra={"model": model_name, "error": str(e)})
    return usage
