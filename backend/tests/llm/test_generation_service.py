"""
Tests for GenerationService

The Gemini client is replaced by a MagicMock; backoff sleeps are recorded
instead of awaited.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from app.services.infrastructure.llm import CostTracker, GenerationService, PromptConfig


def _response(text, prompt_tokens=100, output_tokens=50):
    return SimpleNamespace(
        text=text,
        usage_metadata=SimpleNamespace(
            prompt_token_count=prompt_tokens,
            candidates_token_count=output_tokens,
            total_token_count=prompt_tokens + output_tokens,
        ),
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_service(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    def _make(client):
        return GenerationService(api_key="test-key", client=client, cost_tracker=CostTracker(), sleep=fake_sleep)
    return _make


class TestGenerate:
    """Test suite for GenerationService.generate"""

    @pytest.mark.asyncio
    async def test_parses_json_and_tracks_usage(self, make_service):
        client = MagicMock()
        client.generate_content.return_value = _response('```json\n{"score": 77}\n```')
        service = make_service(client)

        result = await service.generate("prompt", "scoring")

        assert result.success is True
        assert result.parsed_json == {"score": 77}
        assert result.usage["input_tokens"] == 100
        assert service.cost_tracker.summary()["gemini-flash-lite-latest"]["requests"] == 1
        kwargs = client.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-flash-lite-latest"
        assert kwargs["contents"] == "prompt"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_unparsable_response_is_still_a_success(self, make_service):
        client = MagicMock()
        client.generate_content.return_value = _response("I cannot comply")

        result = await make_service(client).generate("prompt", "analysis")

        assert result.success is True
        assert result.parsed_json is None
        assert result.text == "I cannot comply"

    @pytest.mark.asyncio
    async def test_retries_with_exponential_backoff(self, make_service, sleeps):
        client = MagicMock()
        client.generate_content.side_effect = [
            RuntimeError("503"),
            RuntimeError("503"),
            _response('{"ok": true}'),
        ]

        result = await make_service(client).generate("prompt", "writing")

        assert result.success is True
        assert client.generate_content.call_count == 3
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, make_service, sleeps):
        client = MagicMock()
        client.generate_content.side_effect = RuntimeError("quota exceeded")

        result = await make_service(client).generate("prompt", "quality_control")

        assert result.success is False
        assert result.error.startswith("Failed after 3 attempts")
        assert "quota exceeded" in result.error
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_text_mode_skips_json_parsing(self, make_service):
        client = MagicMock()
        client.generate_content.return_value = _response('{"a": 1}')

        result = await make_service(client).generate("prompt", "writing", config=PromptConfig(response_format="text"))

        assert result.parsed_json is None
        assert client.generate_content.call_args.kwargs["config"].response_mime_type is None

    @pytest.mark.asyncio
    async def test_model_override_from_environment(self, make_service, monkeypatch):
        monkeypatch.setenv("CONVEYOR_MODEL", "gemini-2.5-pro")
        client = MagicMock()
        client.generate_content.return_value = _response("{}")

        await make_service(client).generate("prompt", "scoring")

        assert client.generate_content.call_args.kwargs["model"] == "gemini-2.5-pro"


class TestConfiguration:
    """Test suite for client configuration"""

    def test_without_key_or_client_is_not_configured(self):
        service = GenerationService(api_key="")

        assert service.is_configured is False

    @pytest.mark.asyncio
    async def test_unconfigured_service_returns_failed_result(self):
        result = await GenerationService(api_key="").generate("prompt", "scoring")

        assert result.success is False
        assert "not configured" in result.error

    @pytest.mark.asyncio
    async def test_client_is_created_lazily(self):
        client = MagicMock()
        client.generate_content.return_value = _response("{}")

        with patch("app.services.infrastructure.llm.generation_service.create_client",
                   return_value=client) as create:
            service = GenerationService(api_key="abc")
            assert create.call_count == 0
            await service.generate("prompt", "scoring")

        create.assert_called_once_with("abc")
