"""
Unit tests for the live generation backend.

HTTP calls go through httpx.MockTransport; the text provider is a
BaseProvider whose chat() is an AsyncMock.
"""

import base64
import json
from typing import List
from unittest.mock import AsyncMock

import httpx
import pytest

from storyreel.errors import FatalProviderError, TransientProviderError
from storyreel.providers import BaseProvider, LiveGenerationBackend, ProviderResponse
from storyreel.schemas import CommandAction, NarrativeContext, VideoJobHandle, VideoStatus


class RecordingTextProvider(BaseProvider):
    """Text provider returning canned responses"""

    def __init__(self, responses: List[ProviderResponse]):
        super().__init__("http://llm.test", "key", "test-model")
        self.chat = AsyncMock(side_effect=responses)

    async def chat(self, messages, json_schema=None, **kwargs):  # replaced per instance
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def live_settings(settings):
    return settings.model_copy(
        update={
            "google_api_key": "g-test-key",
            "google_api_base": "https://media.test/v1beta",
            "use_fake_image_generator": False,
            "use_fake_video_generator": False,
        }
    )


def _backend(live_settings, handler, text_provider=None) -> LiveGenerationBackend:
    backend = LiveGenerationBackend(live_settings, text_provider=text_provider)
    transport = httpx.MockTransport(handler)
    backend._client = lambda: httpx.AsyncClient(transport=transport)
    return backend


class TestLiveImages:
    """Test Imagen calls"""

    @pytest.mark.asyncio
    async def test_generate_image(self, live_settings):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            encoded = base64.b64encode(b"\x89PNG-bytes").decode()
            return httpx.Response(
                200,
                json={"predictions": [{"bytesBase64Encoded": encoded, "mimeType": "image/png"}]},
            )

        backend = _backend(live_settings, handler)
        image = await backend.generate_image("A flooded hall", "Nova", ["p1", "p2", "p3"], "noir")

        assert image.data == b"\x89PNG-bytes"
        assert image.content_type == "image/png"
        assert image.provider == "live"
        assert "A flooded hall" in image.prompt
        assert "p1" not in image.prompt and "p2, p3" in image.prompt

        request = requests[0]
        assert str(request.url).endswith("/models/imagen-4.0-generate-001:predict")
        assert request.headers["x-goog-api-key"] == "g-test-key"
        assert json.loads(request.content)["instances"][0]["prompt"] == image.prompt

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_then_raised(self, live_settings):
        """Test three attempts on a persistent 503"""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, json={"error": "unavailable"})

        backend = _backend(live_settings, handler)
        with pytest.raises(TransientProviderError):
            await backend.generate_image("scene", "Nova", [])

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, live_settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": "bad prompt"})

        backend = _backend(live_settings, handler)
        with pytest.raises(FatalProviderError):
            await backend.generate_image("scene", "Nova", [])

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_empty_predictions(self, live_settings):
        backend = _backend(live_settings, lambda request: httpx.Response(200, json={}))
        with pytest.raises(FatalProviderError, match="No image generated"):
            await backend.generate_image("scene", "Nova", [])

    @pytest.mark.asyncio
    async def test_missing_key_is_fatal(self, live_settings):
        settings = live_settings.model_copy(update={"google_api_key": ""})
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        backend = _backend(settings, handler)
        with pytest.raises(FatalProviderError, match="Google API key"):
            await backend.generate_image("scene", "Nova", [])

        assert calls == []

    @pytest.mark.asyncio
    async def test_non_json_body_is_fatal(self, live_settings):
        """Test that an undecodable 200 response maps to a provider error"""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, content=b"<html>gateway</html>")

        backend = _backend(live_settings, handler)
        with pytest.raises(FatalProviderError, match="Image generation API error"):
            await backend.generate_image("scene", "Nova", [])

        assert len(calls) == 1


class TestLiveVideo:
    """Test Veo job creation, polling and download"""

    @pytest.mark.asyncio
    async def test_start_job(self, live_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url).endswith(
                "/models/veo-3.1-generate-preview:predictLongRunning"
            )
            return httpx.Response(200, json={"name": "models/veo/operations/op-1"})

        handle = await _backend(live_settings, handler).generate_video_job("highlight")

        assert handle.provider == "veo"
        assert handle.name == "models/veo/operations/op-1"
        assert handle.is_done is False

    @pytest.mark.asyncio
    async def test_start_job_without_name(self, live_settings):
        backend = _backend(live_settings, lambda request: httpx.Response(200, json={}))
        with pytest.raises(FatalProviderError):
            await backend.generate_video_job("highlight")

    @pytest.mark.asyncio
    async def test_non_json_job_responses_are_fatal(self, live_settings):
        backend = _backend(live_settings, lambda request: httpx.Response(200, content=b"oops"))
        handle = VideoJobHandle(provider="veo", name="models/veo/operations/op-1")

        with pytest.raises(FatalProviderError, match="Video generation API error"):
            await backend.generate_video_job("highlight")
        with pytest.raises(FatalProviderError, match="Video status API error"):
            await backend.poll_video_job(handle)

    @pytest.mark.asyncio
    async def test_poll_running(self, live_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1beta/models/veo/operations/op-1"
            return httpx.Response(200, json={"name": "models/veo/operations/op-1", "done": False})

        handle = VideoJobHandle(provider="veo", name="models/veo/operations/op-1")
        result = await _backend(live_settings, handler).poll_video_job(handle)

        assert result.terminal is False
        assert result.status == VideoStatus.generating

    @pytest.mark.asyncio
    async def test_poll_completed(self, live_settings):
        uri = "https://media.test/v1beta/files/video-1:download"
        body = {
            "done": True,
            "response": {"generateVideoResponse": {"generatedSamples": [{"video": {"uri": uri}}]}},
        }
        handle = VideoJobHandle(provider="veo", name="models/veo/operations/op-1")

        result = await _backend(
            live_settings, lambda request: httpx.Response(200, json=body)
        ).poll_video_job(handle)

        assert result.terminal is True
        assert result.status == VideoStatus.completed
        assert result.asset_ref == uri
        assert result.handle.result_asset_ref == uri

    @pytest.mark.asyncio
    async def test_poll_done_without_video(self, live_settings):
        body = {"done": True, "error": {"message": "blocked by safety filter"}}
        handle = VideoJobHandle(provider="veo", name="models/veo/operations/op-1")

        result = await _backend(
            live_settings, lambda request: httpx.Response(200, json=body)
        ).poll_video_job(handle)

        assert result.terminal is True
        assert result.status == VideoStatus.failed
        assert result.asset_ref is None

    @pytest.mark.asyncio
    async def test_fetch_follows_redirect(self, live_settings):
        """Test that the download follows the storage redirect"""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "media.test":
                assert request.headers["x-goog-api-key"] == "g-test-key"
                return httpx.Response(
                    302, headers={"Location": "https://storage.test/video-1.mp4"}
                )
            return httpx.Response(200, content=b"mp4-bytes")

        data = await _backend(live_settings, handler).fetch_asset(
            "https://media.test/v1beta/files/video-1:download"
        )

        assert data == b"mp4-bytes"

    @pytest.mark.asyncio
    async def test_fetch_error(self, live_settings):
        backend = _backend(live_settings, lambda request: httpx.Response(500))
        with pytest.raises(TransientProviderError):
            await backend.fetch_asset("https://media.test/v1beta/files/video-1:download")


class TestLiveText:
    """Test narrative, options and command extraction"""

    @pytest.mark.asyncio
    async def test_narrative(self, live_settings, db, seeded_story, story):
        provider = RecordingTextProvider(
            [ProviderResponse(content="  The door creaks open.  ", usage={"total_tokens": 42})]
        )
        backend = LiveGenerationBackend(live_settings, text_provider=provider)
        context = NarrativeContext(
            story=story,
            hologram=db.get_hologram(seeded_story[1]),
            user_prompt="open the door",
            turn_number=1,
        )

        result = await backend.generate_narrative(context)

        assert result.text == "The door creaks open."
        assert result.usage == {"total_tokens": 42}
        messages = provider.chat.await_args.args[0]
        assert story.title in messages[0].content
        assert 'The user says "open the door"' in messages[1].content
        assert provider.chat.await_args.kwargs["temperature"] == live_settings.narrative_temperature

    @pytest.mark.asyncio
    async def test_empty_narrative_is_fatal(self, live_settings, db, seeded_story, story):
        provider = RecordingTextProvider([ProviderResponse(content="   ")])
        backend = LiveGenerationBackend(live_settings, text_provider=provider)
        context = NarrativeContext(
            story=story,
            hologram=db.get_hologram(seeded_story[1]),
            user_prompt="wait",
            turn_number=1,
        )

        with pytest.raises(FatalProviderError):
            await backend.generate_narrative(context)
        assert provider.chat.await_count == 1

    @pytest.mark.asyncio
    async def test_options_are_normalized(self, live_settings, db, seeded_story, story):
        provider = RecordingTextProvider(
            [ProviderResponse(content="1. Run\n2. Hide\n\n- Fight")]
        )
        backend = LiveGenerationBackend(live_settings, text_provider=provider)
        context = NarrativeContext(
            story=story,
            hologram=db.get_hologram(seeded_story[1]),
            user_prompt="wait",
            turn_number=1,
        )

        options = await backend.generate_options(context, "Something stirs.")

        assert options[:3] == ["Run", "Hide", "Fight"]
        assert len(options) == 4

    @pytest.mark.asyncio
    async def test_extract_command(self, live_settings):
        provider = RecordingTextProvider(
            [
                ProviderResponse(
                    content="{}",
                    structured={
                        "action": "remove",
                        "targetHologram": "Captain Nova",
                        "targetSimulation": None,
                    },
                )
            ]
        )
        backend = LiveGenerationBackend(live_settings, text_provider=provider)

        command = await backend.extract_command("delete captain nova", ["Captain Nova"])

        assert command.action == CommandAction.remove
        assert command.target_entity == "Captain Nova"
        assert provider.chat.await_args.kwargs["json_schema"]["name"] == "hologram_command"

    @pytest.mark.asyncio
    async def test_extract_command_invalid_action(self, live_settings):
        provider = RecordingTextProvider(
            [ProviderResponse(content="{}", structured={"action": "explode"})]
        )
        backend = LiveGenerationBackend(live_settings, text_provider=provider)

        with pytest.raises(FatalProviderError):
            await backend.extract_command("explode Nova", ["Nova"])
        assert provider.chat.await_count == 1

    @pytest.mark.asyncio
    async def test_no_text_provider(self, live_settings):
        backend = LiveGenerationBackend(live_settings)
        with pytest.raises(FatalProviderError):
            await backend.extract_command("update Nova", ["Nova"])
