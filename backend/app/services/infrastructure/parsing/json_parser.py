"""
JSON extraction from generation service responses.

The generation service is asked for one JSON object but routinely wraps it
in markdown fences, surrounds it with prose or emits invalid escapes. These
helpers recover the object where possible and report failure (None) where
not, so each stage can fall back to its own safe default.
"""

import json
import re
from typing import Any, Dict, List, Optional


def strip_markdown_fences(text: str) -> str:
    text = text.strip()
    if "```" not in text:
        return text
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines).strip()


def extract_largest_balanced_json(text: str) -> Optional[str]:
    """Extract the largest balanced ``{...}`` object from text.

    Scans for balanced braces/brackets while respecting string literals and
    escapes, so braces inside strings do not confuse the match.
    """
    if not text:
        return None

    in_string = False
    escape = False
    stack: List[str] = []
    start_idx: Optional[int] = None
    best: Optional[str] = None

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue

        if ch in "{[":
            if not stack:
                start_idx = i
            stack.append(ch)
            continue

        if ch in "}]":
            if not stack:
                continue
            open_ch = stack[-1]
            if (open_ch == "{" and ch == "}") or (open_ch == "[" and ch == "]"):
                stack.pop()
                if not stack and start_idx is not None:
                    candidate = text[start_idx:i + 1]
                    if candidate.startswith("{") and (best is None or len(candidate) > len(best)):
                        best = candidate
                    start_idx = None
            else:
                stack.clear()
                start_idx = None

    return best


def fix_json_escapes(text: str) -> str:
    """Escape lone backslashes while preserving valid JSON escapes."""
    return re.sub(r'\\(?!["\\/bfnrt]|u[0-9a-fA-F]{4})', r"\\\\", text)


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    for attempt in (candidate, fix_json_escapes(candidate)):
        try:
            value = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        return value if isinstance(value, dict) else None
    return None


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse the JSON object contained in ``text``; None when there is none."""
    if not text or not text.strip():
        return None

    cleaned = strip_markdown_fences(text)
    parsed = _loads_object(cleaned)
    if parsed is not None:
        return parsed

    candidate = extract_largest_balanced_json(cleaned)
    if candidate:
        return _loads_object(candidate)
    return None


def parse_json_response(text: Optional[str], default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Parse JSON from a response, returning ``default`` (or {}) on failure."""
    parsed = parse_json_object(text)
    if parsed is None:
        return {} if default is None else default
    return parsed
