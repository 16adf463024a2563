"""
Prompt Registry - Clean exports and registry pattern.

Structure:
    prompts/
    ├── __init__.py      # This file - exports and registry
    ├── base.py          # PromptTemplate class
    ├── scoring.py       # Scorer / Analyst prompts
    ├── writing.py       # Architect / Writer prompts
    └── quality.py       # QC / Optimizer prompts

Usage:
    from app.services.infrastructure.llm.prompting_engine.prompts import format_prompt

    prompt = format_prompt("SCORE_SOURCE", title="...", content="...")
"""

from typing import Dict

from .base import PromptTemplate
from .scoring import SCORE_SOURCE, ANALYZE_SOURCE
from .writing import CHOOSE_FORMAT, WRITE_SCRIPT
from .quality import REVIEW_SCRIPT, OPTIMIZE_SCRIPT


_REGISTRY: Dict[str, PromptTemplate] = {
    "SCORE_SOURCE": SCORE_SOURCE,
    "ANALYZE_SOURCE": ANALYZE_SOURCE,
    "CHOOSE_FORMAT": CHOOSE_FORMAT,
    "WRITE_SCRIPT": WRITE_SCRIPT,
    "REVIEW_SCRIPT": REVIEW_SCRIPT,
    "OPTIMIZE_SCRIPT": OPTIMIZE_SCRIPT,
}


def get_prompt(name: str) -> PromptTemplate:
    """Get a prompt template by name."""
    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY.keys()))
        raise KeyError(f"Unknown prompt: '{name}'. Available: {available}")
    return _REGISTRY[name]


def format_prompt(name: str, **kwargs) -> str:
    """Get and format a prompt in one call."""
    return get_prompt(name).format(**kwargs)


def list_prompts() -> list:
    """List all available prompt names."""
    return sorted(_REGISTRY.keys())


__all__ = [
    "PromptTemplate",
    "get_prompt",
    "format_prompt",
    "list_prompts",
    "SCORE_SOURCE",
    "ANALYZE_SOURCE",
    "CHOOSE_FORMAT",
    "WRITE_SCRIPT",
    "REVIEW_SCRIPT",
    "OPTIMIZE_SCRIPT",
]
