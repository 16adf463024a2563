"""
Analyst (stage 3) - extracts topic, facts and emotional angles.
"""

from dataclasses import dataclass, field
from typing import List

from app.models import AnalysisData, SourceData
from .base import AgentContext, GenerationAgent, ValidationResult


@dataclass
class AnalystInput:
    source: SourceData
    avoided_topics: List[str] = field(default_factory=list)


class AnalystAgent(GenerationAgent[AnalystInput, AnalysisData]):
    stage = 3
    name = "Analyst"
    step = "analysis"
    prompt_name = "ANALYZE_SOURCE"

    def validate(self, data: AnalystInput) -> ValidationResult:
        if not data.source or not data.source.content:
            return ValidationResult.fail("Source content required")
        return ValidationResult.ok()

    async def execute(self, data: AnalystInput, context: AgentContext) -> AnalysisData:
        self.emit_thinking(context, "Extracting the main topic and key facts")
        raw = await self.generate_json(context, title=data.source.title, content=data.source.content[:8000])
        analysis = AnalysisData.from_response(raw, data.avoided_topics) if raw else AnalysisData.fallback()

        if analysis.avoid_reason:
            self.emit_thinking(context, analysis.avoid_reason)
        elif not analysis.passed:
            self.emit_thinking(context, f"Only {len(analysis.key_facts)} key facts found, not enough for a script")
        else:
            self.emit_thinking(context, f"Topic: {analysis.main_topic} ({len(analysis.key_facts)} facts)")
        return analysis
