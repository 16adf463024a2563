"""
Gemini API client module.

Usage:
    from app.services.infrastructure.llm.gemini import create_client
"""

from .client import GeminiClient, GenerationConfig, create_client

__all__ = ["GeminiClient", "GenerationConfig", "create_client"]
