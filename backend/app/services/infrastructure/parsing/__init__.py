"""
Parsing Module

Utilities for recovering JSON objects from generation service responses.

Usage:
    from app.services.infrastructure.parsing import parse_json_object
"""

from .json_parser import (
    parse_json_object,
    parse_json_response,
    extract_largest_balanced_json,
    fix_json_escapes,
    strip_markdown_fences,
)

__all__ = [
    "parse_json_object",
    "parse_json_response",
    "extract_largest_balanced_json",
    "fix_json_escapes",
    "strip_markdown_fences",
]
