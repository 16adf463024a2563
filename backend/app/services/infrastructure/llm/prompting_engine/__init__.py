"""Prompt templates for the generation-backed pipeline stages."""

from .prompts import PromptTemplate, format_prompt, get_prompt, list_prompts

__all__ = ["PromptTemplate", "format_prompt", "get_prompt", "list_prompts"]
