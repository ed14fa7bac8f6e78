"""
Unit tests for live/fake routing and fallback.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from storyreel.errors import FatalProviderError, TransientProviderError
from storyreel.providers import (
    FakeGenerationBackend,
    SelectingGenerationBackend,
    create_generation_backend,
)
from storyreel.schemas import ImageResult, VideoJobHandle, VideoPollResult, VideoStatus


@pytest.fixture
def live():
    backend = MagicMock()
    backend.generate_image = AsyncMock(
        return_value=ImageResult(prompt="live prompt", data=b"\x89PNG", content_type="image/png")
    )
    backend.generate_video_job = AsyncMock(
        return_value=VideoJobHandle(provider="veo", name="models/veo/operations/op1")
    )
    backend.poll_video_job = AsyncMock()
    backend.fetch_asset = AsyncMock(return_value=b"live-bytes")
    backend.generate_narrative = AsyncMock()
    return backend


class TestSelectingGenerationBackend:
    """Test capability routing"""

    @pytest.mark.asyncio
    async def test_fake_flags_route_to_fake(self, live, fake_backend):
        backend = SelectingGenerationBackend(
            live=live, fake=fake_backend, fake_image=True, fake_video=True
        )

        image = await backend.generate_image("scene", "Nova", [])
        handle = await backend.generate_video_job("prompt")

        assert image.provider == "fake"
        assert handle.provider == "fake"
        live.generate_image.assert_not_called()
        live.generate_video_job.assert_not_called()

    @pytest.mark.asyncio
    async def test_live_image(self, live, fake_backend):
        backend = SelectingGenerationBackend(live=live, fake=fake_backend)

        image = await backend.generate_image("scene", "Nova", ["before"], "noir")

        assert image.prompt == "live prompt"
        live.generate_image.assert_awaited_once_with("scene", "Nova", ["before"], "noir")

    @pytest.mark.asyncio
    async def test_image_fallback_logs_warning(self, live, fake_backend, caplog):
        """Test that a live image failure falls back to fake with a warning"""
        live.generate_image.side_effect = TransientProviderError("Imagen unavailable")
        backend = SelectingGenerationBackend(live=live, fake=fake_backend)

        with caplog.at_level(logging.WARNING, logger="storyreel.providers.backend"):
            image = await backend.generate_image("scene", "Nova", [])

        assert image.provider == "fake"
        warnings = [r for r in caplog.records if getattr(r, "fallback", False)]
        assert len(warnings) == 1
        assert warnings[0].levelno == logging.WARNING
        assert "Imagen unavailable" in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_image_failure_without_fallback(self, live, fake_backend):
        live.generate_image.side_effect = TransientProviderError("Imagen unavailable")
        backend = SelectingGenerationBackend(
            live=live, fake=fake_backend, fallback_enabled=False
        )

        with pytest.raises(TransientProviderError):
            await backend.generate_image("scene", "Nova", [])

    @pytest.mark.asyncio
    async def test_video_fallback(self, live, fake_backend):
        live.generate_video_job.side_effect = FatalProviderError("quota exceeded")
        backend = SelectingGenerationBackend(live=live, fake=fake_backend)

        handle = await backend.generate_video_job("prompt")

        assert handle.provider == "fake"
        assert handle.is_done

    @pytest.mark.asyncio
    async def test_poll_routes_by_provider(self, live, fake_backend):
        """A job is always polled by the generator that created it"""
        backend = SelectingGenerationBackend(live=live, fake=fake_backend)
        fake_handle = await fake_backend.generate_video_job("prompt")
        live_handle = VideoJobHandle(provider="veo", name="models/veo/operations/op1")
        live.poll_video_job.return_value = VideoPollResult(
            terminal=False, status=VideoStatus.generating, handle=live_handle
        )

        fake_result = await backend.poll_video_job(fake_handle)
        live_result = await backend.poll_video_job(live_handle)

        assert fake_result.status == VideoStatus.completed
        assert live_result.terminal is False
        live.poll_video_job.assert_awaited_once_with(live_handle)

    @pytest.mark.asyncio
    async def test_fetch_routes_by_scheme(self, live, fake_backend):
        backend = SelectingGenerationBackend(live=live, fake=fake_backend)

        fake_data = await backend.fetch_asset("fake://video/abc")
        live_data = await backend.fetch_asset("https://example.test/files/abc")

        assert fake_data[4:8] == b"ftyp"
        assert live_data == b"live-bytes"

    @pytest.mark.asyncio
    async def test_no_live_backend(self, fake_backend):
        """Test that everything goes to fake and live-only jobs are rejected"""
        backend = SelectingGenerationBackend(live=None, fake=fake_backend)

        image = await backend.generate_image("scene", "Nova", [])
        assert image.provider == "fake"

        with pytest.raises(FatalProviderError):
            await backend.poll_video_job(
                VideoJobHandle(provider="veo", name="models/veo/operations/op1")
            )


class TestCreateGenerationBackend:
    """Test backend construction from settings"""

    def test_all_fake_builds_no_live_backend(self, settings):
        backend = create_generation_backend(settings)

        assert isinstance(backend, SelectingGenerationBackend)
        assert backend.live is None
        assert isinstance(backend.fake, FakeGenerationBackend)
        assert backend.fake.image_delay_ms == 0

    def test_media_live_text_fake(self, settings):
        live_settings = settings.model_copy(
            update={
                "google_api_key": "g-test",
                "use_fake_image_generator": False,
                "use_fake_video_generator": False,
            }
        )

        backend = create_generation_backend(live_settings)

        assert backend.live is not None
        assert backend.live.text_provider is None
        assert backend.fake_text is True
        assert backend.fake_image is False
        assert backend.fake_video is False
