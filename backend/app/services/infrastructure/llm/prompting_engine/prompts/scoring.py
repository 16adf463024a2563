"""
Source scoring and analysis prompts.

Used by: pipeline/agents/scorer.py, pipeline/agents/analyst.py
"""

from .base import PromptTemplate


SCORE_SOURCE = PromptTemplate(
    template="""You are an editor for a short-form video channel. Rate how well this
source would work as a 30-90 second vertical video.

TITLE: {title}

CONTENT:
{content}

Score four dimensions:
- fact_score (0-35): concrete, surprising, verifiable facts
- relevance (0-25): timeliness and relevance to the audience
- audience (0-20): breadth of the audience that cares
- interest (0-20): emotional pull and shareability

Respond with ONLY valid JSON:
{{
  "score": 0-100,
  "breakdown": {{"fact_score": 0, "relevance": 0, "audience": 0, "interest": 0}},
  "reasoning": "one or two sentences"
}}""",
    description="Virality score of a source item"
)


ANALYZE_SOURCE = PromptTemplate(
    template="""Analyze this source for a short-form video script.

TITLE: {title}

CONTENT:
{content}

Extract:
- main_topic: the single topic of the video
- sub_topics: up to 3 supporting topics
- key_facts: up to 5 concrete facts (numbers, names, dates)
- target_audience: up to 3 audience segments
- emotional_angles: up to 3 emotional angles
- controversy_level: 1 (neutral) to 10 (divisive)

Respond with ONLY valid JSON:
{{
  "main_topic": "",
  "sub_topics": [],
  "key_facts": [],
  "target_audience": [],
  "emotional_angles": [],
  "controversy_level": 5
}}""",
    description="Topic and fact extraction"
)
