"""
Provider factory for building generation backends from configuration
"""

from typing import Optional

from storyreel.config import Settings

from .backend import GenerationBackend, SelectingGenerationBackend
from .base import BaseProvider
from .fake import FakeGenerationBackend
from .live import LiveGenerationBackend
from .openai import OpenAIProvider


def create_text_provider(settings: Settings) -> BaseProvider:
    """Create the text provider used for narrative, options and command parsing"""
    return OpenAIProvider(
        api_base=settings.openai_api_base,
        api_key=settings.openai_api_key,
        model_name=settings.model_name,
        timeout=settings.provider_timeout_seconds,
    )


def create_generation_backend(
    settings: Settings, text_provider: Optional[BaseProvider] = None
) -> GenerationBackend:
    """
    Build the selecting backend for the given settings.

    A live backend is only constructed when at least one capability is
    configured to use it, so a credential-free setup never touches the
    OpenAI or Google clients.
    """
    fake = FakeGenerationBackend(
        image_delay_ms=settings.fake_image_delay_ms,
        video_delay_ms=settings.fake_video_delay_ms,
    )

    live: Optional[LiveGenerationBackend] = None
    needs_live = not (
        settings.fake_text_enabled
        and settings.fake_image_enabled
        and settings.fake_video_enabled
    )
    if needs_live:
        if text_provider is None and not settings.fake_text_enabled:
            text_provider = create_text_provider(settings)
        live = LiveGenerationBackend(settings, text_provider=text_provider)

    return SelectingGenerationBackend(
        live=live,
        fake=fake,
        fake_text=settings.fake_text_enabled,
        fake_image=settings.fake_image_enabled,
        fake_video=settings.fake_video_enabled,
        fallback_enabled=settings.fake_fallback_enabled,
    )
