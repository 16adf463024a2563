"""
Scorer (stage 2) - rates a source's virality potential.
"""

from dataclasses import dataclass

from app.config.constants import MIN_SCORABLE_LENGTH
from app.models import ScoreData, SourceData
from .base import AgentContext, GenerationAgent, ValidationResult


@dataclass
class ScorerInput:
    source: SourceData
    threshold: int


class ScorerAgent(GenerationAgent[ScorerInput, ScoreData]):
    stage = 2
    name = "Scorer"
    step = "scoring"
    prompt_name = "SCORE_SOURCE"

    def validate(self, data: ScorerInput) -> ValidationResult:
        if not data.source or not data.source.content:
            return ValidationResult.fail("Source content required")
        if len(data.source.content) < MIN_SCORABLE_LENGTH:
            return ValidationResult.fail(f"Content too short for scoring (min {MIN_SCORABLE_LENGTH} chars)")
        return ValidationResult.ok()

    async def execute(self, data: ScorerInput, context: AgentContext) -> ScoreData:
        self.emit_thinking(context, f"Scoring \"{data.source.title[:60]}\" (threshold {data.threshold})")
        raw = await self.generate_json(context, title=data.source.title, content=data.source.content[:8000])
        score = ScoreData.from_response(raw, data.threshold) if raw else ScoreData.fallback(data.threshold)
        self.emit_thinking(context, f"Score {score.score}/100 ({score.verdict}), "
                                    f"{'passed' if score.passed else 'below threshold'}")
        return score
