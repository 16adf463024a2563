import json
import os
import tempfile
from datetime import datetime

import pytest

# Configure the environment before any app module reads it
os.environ["GEMINI_API_KEY"] = "mock-key"
os.environ["CONVEYOR_RUNNER_ENABLED"] = "false"
os.environ.setdefault("CONVEYOR_DATA_DIR", tempfile.mkdtemp(prefix="conveyor-test-"))

from app.models import SourceData, SourceType  # noqa: E402
from app.services.container import ServiceContainer, reset_container  # noqa: E402
from app.services.infrastructure.llm import GenerationResult  # noqa: E402
from app.services.infrastructure.sources import SourceCandidate, StaticSourceProvider  # noqa: E402
from app.services.pipeline import EventBus  # noqa: E402
from app.services.pipeline.agents import AgentContext  # noqa: E402


LONG_CONTENT = (
    "Researchers announced on Monday that a floating barrier removed more plastic from the "
    "Pacific garbage patch in one month than in the whole previous year. The team said the "
    "new design traps particles as small as one centimetre and runs on solar power alone. "
    "Independent scientists called the results promising but asked for a longer trial."
)

SCENES = [
    {"id": 1, "label": "hook", "text": "One barrier just beat a whole year of cleanup.", "start": 0, "end": 5},
    {"id": 2, "label": "context", "text": "The Pacific garbage patch is twice the size of Texas.", "start": 5, "end": 15},
    {"id": 3, "label": "main", "text": "The new design traps plastic down to one centimetre.", "start": 15, "end": 45},
    {"id": 4, "label": "twist", "text": "And it runs entirely on solar power.", "start": 45, "end": 55},
    {"id": 5, "label": "cta", "text": "Follow for the results of the long trial.", "start": 55, "end": 60},
]

HAPPY_RESPONSES = {
    "scoring": {
        "score": 82,
        "breakdown": {"fact_score": 30, "relevance": 20, "audience": 16, "interest": 16},
        "reasoning": "Concrete numbers and a clear hook",
    },
    "analysis": {
        "main_topic": "Ocean cleanup barrier breakthrough",
        "sub_topics": ["plastic", "solar"],
        "key_facts": ["One month beat a year", "Traps 1cm particles", "Solar powered"],
        "target_audience": ["science fans"],
        "emotional_angles": ["hope"],
        "controversy_level": 3,
    },
    "architecture": {
        "format_id": "explainer",
        "reasoning": "Fact-heavy story",
        "template": {"hook": 5, "context": 10, "main": 30, "twist": 10, "cta": 5},
        "estimated_duration": 60,
    },
    "writing": {
        "scenes": SCENES,
        "full_script": " ".join(scene["text"] for scene in SCENES),
        "estimated_duration": 60,
    },
    "quality_control": {
        "hook_score": 90,
        "structure_score": 88,
        "emotional_score": 86,
        "cta_score": 85,
        "weak_spots": [],
    },
    "optimization": {
        "improved_scenes": SCENES,
        "changes": [],
    },
}


class ScriptedGeneration:
    """
    Stand-in for GenerationService that answers each step from a script.

    A step's responses are consumed in order; the last one repeats. A
    response of None simulates unparsable output, an Exception instance a
    failed call.
    """

    def __init__(self, responses=None, configured=True):
        self.responses = {step: [payload] for step, payload in HAPPY_RESPONSES.items()}
        for step, payload in (responses or {}).items():
            self.set(step, payload)
        self.is_configured = configured
        self.calls = []

    def set(self, step, *payloads):
        self.responses[step] = list(payloads)

    def count(self, step):
        return sum(1 for called_step, _ in self.calls if called_step == step)

    def prompts(self, step):
        return [prompt for called_step, prompt in self.calls if called_step == step]

    async def generate(self, prompt, step, config=None, context=None):
        self.calls.append((step, prompt))
        queue = self.responses[step]
        payload = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(payload, Exception):
            return GenerationResult(success=False, error=str(payload))
        if payload is None:
            return GenerationResult(success=True, text="no json here", parsed_json=None)
        return GenerationResult(success=True, text=json.dumps(payload), parsed_json=payload)


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Give every test its own data directory and a fresh shared container."""
    data_dir = tmp_path / "conveyor_data"
    monkeypatch.setenv("CONVEYOR_DATA_DIR", str(data_dir))
    reset_container()
    yield data_dir
    reset_container()


@pytest.fixture
def generation():
    return ScriptedGeneration()


@pytest.fixture
def news_provider():
    return StaticSourceProvider(source_type=SourceType.NEWS)


@pytest.fixture
def services(isolated_data_dir, generation, news_provider):
    container = ServiceContainer.build(
        data_dir=isolated_data_dir,
        generation=generation,
        providers={SourceType.NEWS: news_provider},
    )
    yield container
    container.event_log.detach()


@pytest.fixture
def make_source():
    def _make(item_id="src-1", title="Ocean barrier beats a year of cleanup", content=LONG_CONTENT,
              source_type=SourceType.NEWS, **extra):
        return SourceData(
            type=source_type,
            item_id=item_id,
            title=title,
            content=content,
            url=extra.pop("url", f"https://news.example.com/{item_id}"),
            published_at=extra.pop("published_at", datetime.now()),
            **extra,
        )
    return _make


@pytest.fixture
def recorded_events():
    """An EventBus together with the list of every event it published."""
    bus = EventBus()
    events = []
    bus.subscribe(events.append)
    return bus, events


@pytest.fixture
def agent_context(recorded_events):
    bus, _ = recorded_events
    history = []
    context = AgentContext(user_id="user-1", item_id="item-1", bus=bus, history=history.append)
    context.extra["history"] = history
    return context


@pytest.fixture
def make_candidate():
    def _make(candidate_id="cand-1", title="Ocean barrier beats a year of cleanup",
              content=LONG_CONTENT * 2, **extra):
        return SourceCandidate(
            id=candidate_id,
            source_id=extra.pop("source_id", "https://feeds.example.com/science"),
            title=title,
            content=content,
            url=extra.pop("url", None),
            published_at=extra.pop("published_at", datetime.now()),
            **extra,
        )
    return _make


@pytest.fixture
def generation_factory():
    """Build extra ScriptedGeneration instances (e.g. unconfigured ones)."""
    return ScriptedGeneration
