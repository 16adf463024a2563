"""
Script structure and writing prompts.

Used by: pipeline/agents/architect.py, pipeline/agents/writer.py
"""

from .base import PromptTemplate


CHOOSE_FORMAT = PromptTemplate(
    template="""Choose the best short-form video format for this topic.

MAIN TOPIC: {main_topic}
KEY FACTS:
{key_facts}
EMOTIONAL ANGLES: {emotional_angles}
CONTROVERSY (1-10): {controversy_level}
TARGET DURATION: {min_duration}-{max_duration} seconds
{preferred_formats}
AVAILABLE FORMATS:
{formats}

Respond with ONLY valid JSON:
{{
  "format_id": "one of the format ids above",
  "reasoning": "why this format fits",
  "template": {{"hook": 5, "context": 10, "main": 35, "twist": 10, "cta": 5}},
  "estimated_duration": {default_duration}
}}""",
    description="Format selection and timing template"
)


WRITE_SCRIPT = PromptTemplate(
    template="""Write a short-form video script.

FORMAT: {format_name}
DURATION: about {duration} seconds
TIMING TEMPLATE (seconds): {template}

MAIN TOPIC: {main_topic}
KEY FACTS:
{key_facts}
EMOTIONAL ANGLES: {emotional_angles}

SOURCE ({title}):
{content}
{guidance}{revision}
Use scenes labelled hook, context, main, twist and cta, in that order.

Respond with ONLY valid JSON:
{{
  "scenes": [
    {{"id": 1, "label": "hook", "text": "", "start": 0, "end": 5, "visual_note": ""}}
  ],
  "full_script": "all scene texts joined",
  "estimated_duration": {duration}
}}""",
    description="Scene-by-scene script"
)
