"""
Quality control and optimization prompts.

Used by: pipeline/agents/qc.py, pipeline/agents/optimizer.py
"""

from .base import PromptTemplate


REVIEW_SCRIPT = PromptTemplate(
    template="""Review this short-form video script as four specialists: hook,
structure, emotional impact and call to action.

FORMAT: {format_name}

SCRIPT:
{scenes}

Score each dimension 0-100 and list concrete problems, each tied to a scene.

Respond with ONLY valid JSON:
{{
  "hook_score": 0,
  "structure_score": 0,
  "emotional_score": 0,
  "cta_score": 0,
  "recommendations": [
    {{"scene_id": 1, "area": "hook|structure|emotional|cta", "priority": "critical|major|minor",
      "issue": "", "suggestion": ""}}
  ]
}}""",
    description="Script quality review"
)


OPTIMIZE_SCRIPT = PromptTemplate(
    template="""Improve this script using the quality review below.

CURRENT SCRIPT:
{scenes}

ISSUES TO FIX:
{issues}

Fix every issue following its suggestion, keep what already works, and do
not change the overall structure or the timings.

Respond with ONLY valid JSON:
{{
  "improved_scenes": [
    {{"id": 1, "label": "hook", "text": "", "start": 0, "end": 5}}
  ],
  "changes": [
    {{"scene_id": 1, "original": "", "improved": "", "reason": ""}}
  ],
  "full_script": ""
}}""",
    description="Targeted rewrite of weak scenes"
)
