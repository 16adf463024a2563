"""
Per-user conveyor settings, usage counters and learning state.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.config.constants import (
    DEFAULT_DAILY_LIMIT,
    DEFAULT_DURATION_RANGE,
    DEFAULT_MAX_AGE_DAYS,
    DEFAULT_MONTHLY_BUDGET,
    DEFAULT_SCORE_THRESHOLD,
    ESTIMATED_COST_PER_ITEM,
)
from .status import SourceType


class ConveyorSettings(BaseModel):
    user_id: str
    enabled: bool = False

    # Discovery
    source_types: List[SourceType] = Field(default_factory=lambda: [SourceType.NEWS])
    source_ids: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    exclude_keywords: List[str] = Field(default_factory=list)
    max_age_days: int = DEFAULT_MAX_AGE_DAYS

    # Caps
    daily_limit: int = DEFAULT_DAILY_LIMIT
    monthly_budget_limit: float = DEFAULT_MONTHLY_BUDGET

    # Writing
    min_score_threshold: int = DEFAULT_SCORE_THRESHOLD
    duration_range: List[int] = Field(default_factory=lambda: list(DEFAULT_DURATION_RANGE))
    style_preferences: Dict[str, str] = Field(default_factory=dict)
    custom_guidelines: Optional[str] = None
    script_examples: List[str] = Field(default_factory=list)

    # Learning
    learned_threshold: Optional[int] = None
    avoided_topics: List[str] = Field(default_factory=list)
    preferred_formats: List[str] = Field(default_factory=list)
    rejection_patterns: Dict[str, int] = Field(default_factory=dict)
    approval_rate: Optional[float] = None

    # Usage counters, only ever changed through atomic repository increments
    items_processed_today: int = 0
    current_month_cost: float = 0.0
    total_processed: int = 0
    total_passed: int = 0
    total_failed: int = 0
    total_approved: int = 0
    total_rejected: int = 0
    last_daily_reset: Optional[datetime] = None
    last_monthly_reset: Optional[datetime] = None

    @property
    def score_threshold(self) -> int:
        return self.learned_threshold if self.learned_threshold is not None else self.min_score_threshold

    @property
    def remaining_daily(self) -> int:
        return max(self.daily_limit - self.items_processed_today, 0)

    @property
    def remaining_budget(self) -> float:
        return max(self.monthly_budget_limit - self.current_month_cost, 0.0)

    @property
    def budget_reached(self) -> bool:
        return self.current_month_cost >= self.monthly_budget_limit

    @property
    def daily_limit_reached(self) -> bool:
        return self.items_processed_today >= self.daily_limit

    def affordable_items(self, cost_per_item: float = ESTIMATED_COST_PER_ITEM) -> int:
        # Rounded before flooring so 0.28 / 0.14 counts as 2
        return int(math.floor(round(self.remaining_budget / cost_per_item, 6)))


class FeedbackEntry(BaseModel):
    script_id: str
    feedback_type: str
    text: str
    created_at: datetime = Field(default_factory=datetime.now)


class WritingProfile(BaseModel):
    """
    Accumulated writing preferences of one user.

    The pipeline only reads this as opaque guidance for the Writer stage.
    """
    user_id: str
    instructions: Optional[str] = None
    avoid_patterns: List[str] = Field(default_factory=list)
    prefer_patterns: List[str] = Field(default_factory=list)
    ai_summary: Optional[str] = None
    feedback_count: int = 0
    feedback_entries: List[FeedbackEntry] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.instructions or self.avoid_patterns or self.prefer_patterns or self.ai_summary)
