"""
Typed stage outputs

Every generation-backed stage produces one of these models. Each exposes a
``from_response`` constructor that tolerates loosely shaped JSON from the
generation service (clamping numbers, trimming lists, accepting camelCase
keys) and a ``fallback`` constructor that yields the safe default used when
the response cannot be parsed at all.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.config.constants import (
    DEFAULT_DURATION_SECONDS,
    DEFAULT_SCORE_THRESHOLD,
    MAX_WEAK_SPOTS,
    MIN_KEY_FACTS,
    QC_CRITICAL_HOOK_SCORE,
    QC_DEFAULT_SUBSCORE,
    QC_MIN_CTA_SCORE,
    QC_MIN_HOOK_SCORE,
    QC_PASS_SCORE,
)
from .status import GateDecision, Severity, SourceType


# =============================================================================
# COERCION HELPERS
# =============================================================================

def _pick(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-empty value among snake/camel variants."""
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return default


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _str_list(value: Any, limit: Optional[int] = None) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [str(v).strip() for v in value if v not in (None, "") and str(v).strip()]
    return items[:limit] if limit is not None else items


# =============================================================================
# STAGE 1 - SOURCE
# =============================================================================

class SourceData(BaseModel):
    """Candidate source item handed from Scout to the per-item run"""
    type: SourceType
    item_id: str
    title: str
    content: str
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None


# =============================================================================
# STAGE 2 - SCORE
# =============================================================================

def verdict_for(score: int) -> str:
    if score >= 85:
        return "viral"
    if score >= 70:
        return "strong"
    if score >= 50:
        return "moderate"
    return "weak"


class ScoreBreakdown(BaseModel):
    fact_score: int = 0
    relevance: int = 0
    audience: int = 0
    interest: int = 0

    @classmethod
    def from_response(cls, raw: Any) -> "ScoreBreakdown":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            fact_score=_clamp_int(_pick(raw, "fact_score", "factScore"), 0, 35, 0),
            relevance=_clamp_int(raw.get("relevance"), 0, 25, 0),
            audience=_clamp_int(raw.get("audience"), 0, 20, 0),
            interest=_clamp_int(raw.get("interest"), 0, 20, 0),
        )


class ScoreData(BaseModel):
    score: int
    verdict: str
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    reasoning: str = ""
    threshold: int = DEFAULT_SCORE_THRESHOLD
    passed: bool = False

    @classmethod
    def from_response(cls, raw: Dict[str, Any], threshold: int) -> "ScoreData":
        score = _clamp_int(raw.get("score"), 0, 100, 0)
        return cls(
            score=score,
            verdict=verdict_for(score),
            breakdown=ScoreBreakdown.from_response(raw.get("breakdown")),
            reasoning=str(raw.get("reasoning") or ""),
            threshold=threshold,
            passed=score >= threshold,
        )

    @classmethod
    def fallback(cls, threshold: int) -> "ScoreData":
        return cls(score=0, verdict="weak", reasoning="Parse error", threshold=threshold, passed=False)


# =============================================================================
# STAGE 3 - ANALYSIS
# =============================================================================

class AnalysisData(BaseModel):
    main_topic: str
    sub_topics: List[str] = Field(default_factory=list)
    key_facts: List[str] = Field(default_factory=list)
    target_audience: List[str] = Field(default_factory=list)
    emotional_angles: List[str] = Field(default_factory=list)
    controversy_level: int = 5
    passed: bool = False
    avoid_reason: Optional[str] = None

    @staticmethod
    def matched_avoided_topic(main_topic: str, avoided_topics: Iterable[str]) -> Optional[str]:
        """Return the avoided topic contained in ``main_topic`` (case-insensitive)."""
        lowered = main_topic.lower()
        for topic in avoided_topics:
            if topic and topic.lower() in lowered:
                return topic
        return None

    @classmethod
    def from_response(cls, raw: Dict[str, Any], avoided_topics: Iterable[str] = ()) -> "AnalysisData":
        main_topic = str(_pick(raw, "main_topic", "mainTopic", default="") or "")
        key_facts = _str_list(_pick(raw, "key_facts", "keyFacts"), 5)
        avoided = cls.matched_avoided_topic(main_topic, avoided_topics)
        return cls(
            main_topic=main_topic,
            sub_topics=_str_list(_pick(raw, "sub_topics", "subTopics"), 3),
            key_facts=key_facts,
            target_audience=_str_list(_pick(raw, "target_audience", "targetAudience"), 3),
            emotional_angles=_str_list(_pick(raw, "emotional_angles", "emotionalAngles"), 3),
            controversy_level=_clamp_int(_pick(raw, "controversy_level", "controversyLevel"), 1, 10, 5),
            passed=avoided is None and len(key_facts) >= MIN_KEY_FACTS,
            avoid_reason=f"Topic matches avoided topic '{avoided}'" if avoided else None,
        )

    @classmethod
    def fallback(cls) -> "AnalysisData":
        return cls(main_topic="Parse error", controversy_level=5, passed=False)


# =============================================================================
# STAGE 4 - ARCHITECTURE
# =============================================================================

FORMATS: Dict[str, str] = {
    "hook_story": "Hook & Story",
    "explainer": "Explainer",
    "news_update": "News Update",
    "listicle": "Top 5 List",
    "hot_take": "Hot Take",
    "myth_buster": "Myth Buster",
}

DEFAULT_FORMAT_ID = "hook_story"


class TimingTemplate(BaseModel):
    """Seconds allotted to each scene label"""
    hook: int = 5
    context: int = 10
    main: int = 35
    twist: int = 10
    cta: int = 5

    @classmethod
    def from_response(cls, raw: Any) -> "TimingTemplate":
        if not isinstance(raw, dict):
            return cls()
        defaults = cls()
        return cls(**{
            label: _clamp_int(raw.get(label), 0, 300, getattr(defaults, label))
            for label in ("hook", "context", "main", "twist", "cta")
        })


def default_duration(duration_range: Optional[Iterable[int]]) -> int:
    """Midpoint of the user's duration range, 65s when unknown."""
    values = list(duration_range or [])
    if len(values) == 2:
        return int(round((values[0] + values[1]) / 2))
    return DEFAULT_DURATION_SECONDS


class ArchitectureData(BaseModel):
    format_id: str
    format_name: str
    reasoning: str = ""
    template: TimingTemplate = Field(default_factory=TimingTemplate)
    estimated_duration: int = DEFAULT_DURATION_SECONDS

    @classmethod
    def from_response(cls, raw: Dict[str, Any], fallback_duration: int) -> "ArchitectureData":
        format_id = str(_pick(raw, "format_id", "formatId", default=DEFAULT_FORMAT_ID))
        if format_id not in FORMATS:
            format_id = DEFAULT_FORMAT_ID
        return cls(
            format_id=format_id,
            format_name=FORMATS[format_id],
            reasoning=str(raw.get("reasoning") or ""),
            template=TimingTemplate.from_response(raw.get("template")),
            estimated_duration=_clamp_int(
                _pick(raw, "estimated_duration", "estimatedDuration"), 5, 600, fallback_duration
            ),
        )

    @classmethod
    def fallback(cls, fallback_duration: int) -> "ArchitectureData":
        return cls(
            format_id=DEFAULT_FORMAT_ID,
            format_name=FORMATS[DEFAULT_FORMAT_ID],
            reasoning="Parse error, using default format",
            estimated_duration=fallback_duration,
        )


# =============================================================================
# STAGE 5 - SCRIPT
# =============================================================================

SceneLabel = Literal["hook", "context", "main", "twist", "cta"]
SCENE_LABELS = ("hook", "context", "main", "twist", "cta")


class Scene(BaseModel):
    id: int
    label: SceneLabel = "main"
    text: str = ""
    start: float = 0
    end: float = 0
    visual_note: Optional[str] = None

    @field_validator("label", mode="before")
    @classmethod
    def _normalize_label(cls, value: Any) -> str:
        label = str(value or "").strip().lower()
        return label if label in SCENE_LABELS else "main"

    @classmethod
    def from_response(cls, raw: Dict[str, Any], index: int, previous: Optional["Scene"] = None) -> "Scene":
        """Build a scene, filling gaps from ``previous`` (the scene it replaces)."""
        return cls(
            id=_clamp_int(raw.get("id"), 1, 1000, index + 1),
            label=raw.get("label") or (previous.label if previous else "main"),
            text=str(raw.get("text") or (previous.text if previous else "")),
            start=_as_float(raw.get("start"), previous.start if previous else 0),
            end=_as_float(raw.get("end"), previous.end if previous else 0),
            visual_note=_pick(raw, "visual_note", "visualNote", "visualNotes",
                              default=previous.visual_note if previous else None),
        )


def join_scenes(scenes: Iterable[Scene]) -> str:
    return " ".join(scene.text for scene in scenes)


def parse_scenes(raw_scenes: Any, previous: Optional[List[Scene]] = None) -> List[Scene]:
    if not isinstance(raw_scenes, list):
        return []
    previous = previous or []
    scenes: List[Scene] = []
    for index, raw in enumerate(raw_scenes):
        if not isinstance(raw, dict):
            continue
        prior = previous[index] if index < len(previous) else None
        scenes.append(Scene.from_response(raw, index, prior))
    return scenes


class ScriptData(BaseModel):
    scenes: List[Scene]
    full_script: str
    estimated_duration: int = DEFAULT_DURATION_SECONDS

    @classmethod
    def from_response(cls, raw: Dict[str, Any], estimated_duration: int) -> "ScriptData":
        scenes = parse_scenes(raw.get("scenes"))
        if not scenes:
            return cls.fallback(estimated_duration)
        full_script = str(_pick(raw, "full_script", "fullScript", default="") or join_scenes(scenes))
        return cls(
            scenes=scenes,
            full_script=full_script,
            estimated_duration=_clamp_int(
                _pick(raw, "estimated_duration", "estimatedDuration"), 5, 600, estimated_duration
            ),
        )

    @classmethod
    def fallback(cls, estimated_duration: int = DEFAULT_DURATION_SECONDS) -> "ScriptData":
        scene = Scene(id=1, label="hook", text="Parse error", start=0, end=5)
        return cls(scenes=[scene], full_script=scene.text, estimated_duration=estimated_duration)

    def scene_by_id(self, scene_id: int) -> Optional[Scene]:
        return next((scene for scene in self.scenes if scene.id == scene_id), None)


# =============================================================================
# STAGE 6 - QUALITY CONTROL
# =============================================================================

WeakSpotArea = Literal["hook", "structure", "emotional", "cta"]


def _map_area(area: Any) -> str:
    lowered = str(area or "").lower()
    if "hook" in lowered:
        return "hook"
    if "emotion" in lowered:
        return "emotional"
    if "cta" in lowered or "call" in lowered:
        return "cta"
    return "structure"


class WeakSpot(BaseModel):
    scene_id: int
    area: WeakSpotArea
    severity: Severity
    issue: str = ""
    suggestion: str = ""

    @classmethod
    def from_recommendation(cls, raw: Dict[str, Any], scene_count: int) -> "WeakSpot":
        area = _map_area(raw.get("area"))
        scene_id = _pick(raw, "scene_id", "sceneId", "scene_number", "sceneNumber")
        if scene_id is None:
            if area == "hook":
                scene_id = 1
            elif area == "cta":
                scene_id = max(scene_count, 1)
            elif area == "structure":
                scene_id = max((scene_count + 1) // 2, 1)
            else:
                scene_id = 1
        return cls(
            scene_id=_clamp_int(scene_id, 1, 1000, 1),
            area=area,
            severity=Severity.from_priority(_pick(raw, "priority", "severity")),
            issue=str(_pick(raw, "issue", "reasoning", default="Issue detected")),
            suggestion=str(_pick(raw, "suggestion", "suggested", default="")),
        )


class QCData(BaseModel):
    hook_score: int = QC_DEFAULT_SUBSCORE
    structure_score: int = QC_DEFAULT_SUBSCORE
    emotional_score: int = QC_DEFAULT_SUBSCORE
    cta_score: int = QC_DEFAULT_SUBSCORE
    overall_score: int = QC_DEFAULT_SUBSCORE
    weak_spots: List[WeakSpot] = Field(default_factory=list)
    passed: bool = False

    @property
    def has_critical(self) -> bool:
        return any(spot.severity is Severity.CRITICAL for spot in self.weak_spots)

    def actionable_weak_spots(self) -> List[WeakSpot]:
        return [spot for spot in self.weak_spots if spot.severity.is_actionable()]

    @classmethod
    def evaluate(
        cls,
        hook: int,
        structure: int,
        emotional: int,
        cta: int,
        weak_spots: List[WeakSpot],
        scene_count: int,
    ) -> "QCData":
        """
        Combine sub-scores and reported weak spots into a QC verdict.

        Low hook/CTA scores add their own weak spot on the first/last scene.
        The pass flag is computed over every weak spot, before the list is
        trimmed to the top entries.
        """
        overall = int(round((hook + structure + emotional + cta) / 4))
        spots = list(weak_spots)

        if hook < QC_MIN_HOOK_SCORE:
            spots.append(WeakSpot(
                scene_id=1,
                area="hook",
                severity=Severity.CRITICAL if hook < QC_CRITICAL_HOOK_SCORE else Severity.MAJOR,
                issue="Hook score below threshold",
                suggestion="Strengthen the opening to grab attention immediately",
            ))

        if cta < QC_MIN_CTA_SCORE:
            spots.append(WeakSpot(
                scene_id=max(scene_count, 1),
                area="cta",
                severity=Severity.CRITICAL if cta < QC_CRITICAL_HOOK_SCORE else Severity.MAJOR,
                issue="CTA score below threshold",
                suggestion="Add a stronger call to action",
            ))

        has_critical = any(spot.severity is Severity.CRITICAL for spot in spots)
        passed = overall >= QC_PASS_SCORE and not has_critical and hook >= QC_MIN_HOOK_SCORE

        return cls(
            hook_score=hook,
            structure_score=structure,
            emotional_score=emotional,
            cta_score=cta,
            overall_score=overall,
            weak_spots=spots[:MAX_WEAK_SPOTS],
            passed=passed,
        )

    @classmethod
    def from_response(cls, raw: Dict[str, Any], scene_count: int) -> "QCData":
        def subscore(*keys: str) -> int:
            value = _pick(raw, *keys)
            # Zero is treated as "not reported"
            if not value:
                return QC_DEFAULT_SUBSCORE
            return _clamp_int(value, 0, 100, QC_DEFAULT_SUBSCORE)

        recommendations = _pick(raw, "weak_spots", "weakSpots", "recommendations", default=[])
        weak_spots = [
            WeakSpot.from_recommendation(rec, scene_count)
            for rec in recommendations
            if isinstance(rec, dict)
        ] if isinstance(recommendations, list) else []

        return cls.evaluate(
            hook=subscore("hook_score", "hookScore"),
            structure=subscore("structure_score", "structureScore"),
            emotional=subscore("emotional_score", "emotionalScore"),
            cta=subscore("cta_score", "ctaScore"),
            weak_spots=weak_spots,
            scene_count=scene_count,
        )

    @classmethod
    def fallback(cls, scene_count: int) -> "QCData":
        return cls.evaluate(
            QC_DEFAULT_SUBSCORE, QC_DEFAULT_SUBSCORE, QC_DEFAULT_SUBSCORE, QC_DEFAULT_SUBSCORE,
            [], scene_count,
        )


# =============================================================================
# STAGE 7 - OPTIMIZATION
# =============================================================================

class ScriptChange(BaseModel):
    scene_id: int
    original: str = ""
    improved: str = ""
    reason: str = ""


class OptimizationData(BaseModel):
    improved_scenes: List[Scene]
    full_script: str
    changes: List[ScriptChange] = Field(default_factory=list)
    iteration_number: int

    @property
    def needs_reqc(self) -> bool:
        return len(self.changes) > 0

    @classmethod
    def unchanged(cls, script: ScriptData, iteration: int) -> "OptimizationData":
        return cls(
            improved_scenes=list(script.scenes),
            full_script=script.full_script,
            changes=[],
            iteration_number=iteration,
        )

    @classmethod
    def from_response(cls, raw: Dict[str, Any], script: ScriptData, iteration: int) -> "OptimizationData":
        scenes = parse_scenes(_pick(raw, "improved_scenes", "improvedScenes"), script.scenes)
        if not scenes:
            return cls.unchanged(script, iteration)
        raw_changes = _pick(raw, "changes", "changes_applied", "changesApplied", default=[])
        changes = [
            ScriptChange(
                scene_id=_clamp_int(_pick(c, "scene_id", "sceneId"), 1, 1000, 1),
                original=str(c.get("original") or ""),
                improved=str(c.get("improved") or ""),
                reason=str(c.get("reason") or ""),
            )
            for c in raw_changes
            if isinstance(c, dict)
        ] if isinstance(raw_changes, list) else []
        return cls(
            improved_scenes=scenes,
            full_script=str(_pick(raw, "full_script", "fullScript", default="") or join_scenes(scenes)),
            changes=changes,
            iteration_number=iteration,
        )


# =============================================================================
# STAGES 8-9 - GATE AND DELIVERY
# =============================================================================

class GateData(BaseModel):
    decision: GateDecision
    reason: str
    confidence: float
    final_score: int
    passed_after_iterations: int = 0


class DeliveryData(BaseModel):
    script_id: Optional[str] = None
    delivered: bool = False
    decision: GateDecision


# =============================================================================
# REVISION CONTEXT
# =============================================================================

class PreviousVersion(BaseModel):
    version_number: int
    full_script: str = ""
    scenes: List[Scene] = Field(default_factory=list)
    feedback: Optional[str] = None


class RevisionContext(BaseModel):
    notes: str
    previous_script_id: str
    attempt: int
    previous_versions: List[PreviousVersion] = Field(default_factory=list)
    selected_scene_ids: Optional[List[int]] = None
