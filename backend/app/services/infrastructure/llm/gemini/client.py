"""
Gemini client wrapper

Thin wrapper around ``google.genai`` that owns client construction and
translates our GenerationConfig into ``types.GenerateContentConfig``.

Environment Variables:
    GEMINI_API_KEY: API key for the Gemini API
"""

import os
from typing import Any, Optional
from dataclasses import dataclass

from app.core import get_logger
from app.core.exceptions import GenerationServiceError

logger = get_logger(__name__, component="gemini_client")


@dataclass
class GenerationConfig:
    """Configuration for content generation"""
    temperature: float = 0.7
    top_p: float = 0.95
    max_output_tokens: int = 2048
    response_mime_type: Optional[str] = None
    system_instruction: Optional[str] = None


class GeminiClient:
    """
    Synchronous Gemini API client.

    Usage:
        client = GeminiClient()
        response = client.generate_content(
            model="gemini-2.5-flash",
            contents="Hello!",
            config=GenerationConfig(temperature=0.7),
        )
        print(response.text)
    """

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise GenerationServiceError("GEMINI_API_KEY environment variable is required")

        try:
            from google import genai
            from google.genai import types
        except ImportError as e:
            raise GenerationServiceError(
                "google-genai package not found. Install it with: pip install google-genai"
            ) from e

        self._types = types
        self.backend = genai.Client(api_key=api_key)

    def generate_content(self, model: str, contents: Any, config: Optional[GenerationConfig] = None):
        """
        Generate content using the Gemini API.

        Returns:
            Response object with ``.text`` and ``.usage_metadata``
        """
        config = config or GenerationConfig()

        gen_config_dict = {
            "temperature": config.temperature,
            "top_p": config.top_p,
            "max_output_tokens": config.max_output_tokens,
        }
        if config.response_mime_type:
            gen_config_dict["response_mime_type"] = config.response_mime_type
        if config.system_instruction:
            gen_config_dict["system_instruction"] = config.system_instruction

        logger.debug("Gemini request", extra={
            "model": model,
            "prompt_length": len(contents) if isinstance(contents, str) else None,
        })

        return self.backend.models.generate_content(
            model=model,
            contents=contents,
            config=self._types.GenerateContentConfig(**gen_config_dict),
        )


def create_client(api_key: Optional[str] = None) -> GeminiClient:
    """Create a Gemini client (convenience function)."""
    return GeminiClient(api_key=api_key)
