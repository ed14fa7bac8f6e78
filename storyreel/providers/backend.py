"""
Generation backend capability set and the Live/Fake selecting wrapper.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from storyreel.errors import FatalProviderError
from storyreel.schemas import (
    CommandClassification,
    ImageResult,
    NarrativeContext,
    NarrativeResult,
    VideoJobHandle,
    VideoPollResult,
)
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

FAKE_ASSET_SCHEME = "fake://"


class GenerationBackend(ABC):
    """
    Everything the engine asks of an external generator.

    Implementations raise ProviderError subclasses; callers decide whether
    a failure is fatal or recoverable.
    """

    name = "backend"

    @abstractmethod
    async def generate_narrative(self, context: NarrativeContext) -> NarrativeResult:
        """Continue the story from the user's action"""
        pass

    @abstractmethod
    async def generate_options(
        self, context: NarrativeContext, narrative: str
    ) -> List[str]:
        """Suggest exactly four next actions given the new narrative"""
        pass

    @abstractmethod
    async def generate_image(
        self,
        scene: str,
        character_context: str,
        previous_prompts: Sequence[str],
        style: str = "cinematic",
    ) -> ImageResult:
        """Render a continuity-aware illustration of ``scene``"""
        pass

    @abstractmethod
    async def generate_video_job(self, prompt: str) -> VideoJobHandle:
        """Start a long-running highlight render"""
        pass

    @abstractmethod
    async def poll_video_job(self, handle: VideoJobHandle) -> VideoPollResult:
        """Check a render job once"""
        pass

    @abstractmethod
    async def fetch_asset(self, asset_ref: str) -> bytes:
        """Download a finished asset referenced by a poll result"""
        pass

    @abstractmethod
    async def extract_command(
        self, text: str, known_names: Sequence[str]
    ) -> CommandClassification:
        """Structured extraction of a hologram management command"""
        pass


class SelectingGenerationBackend(GenerationBackend):
    """
    Routes each capability to the live or fake backend.

    Image and video creation fall back to the fake backend for that single
    call when the live one raises and fallback is enabled. Polls and asset
    fetches are routed by the handle's provider tag or the asset scheme, so
    a job always goes back to the generator that created it.
    """

    name = "selecting"

    def __init__(
        self,
        live: Optional[GenerationBackend],
        fake: GenerationBackend,
        fake_text: bool = False,
        fake_image: bool = False,
        fake_video: bool = False,
        fallback_enabled: bool = True,
    ):
        self.live = live
        self.fake = fake
        self.fake_text = fake_text or live is None
        self.fake_image = fake_image or live is None
        self.fake_video = fake_video or live is None
        self.fallback_enabled = fallback_enabled

    def _require_live(self, capability: str) -> GenerationBackend:
        if self.live is None:
            raise FatalProviderError(f"No live generator configured for {capability}")
        return self.live

    def _log_fallback(self, capability: str, error: Exception) -> None:
        logger.warning(
            f"[{capability}] Live generator failed, falling back to fake generator: {error}",
            extra={
                "component": capability,
                "fallback": True,
                "error_type": type(error).__name__,
                "error": str(error)[:300],
            },
        )

    async def generate_narrative(self, context: NarrativeContext) -> NarrativeResult:
        backend = self.fake if self.fake_text else self._require_live("narrative")
        return await backend.generate_narrative(context)

    async def generate_options(
        self, context: NarrativeContext, narrative: str
    ) -> List[str]:
        backend = self.fake if self.fake_text else self._require_live("options")
        return await backend.generate_options(context, narrative)

    async def generate_image(
        self,
        scene: str,
        character_context: str,
        previous_prompts: Sequence[str],
        style: str = "cinematic",
    ) -> ImageResult:
        if self.fake_image:
            return await self.fake.generate_image(
                scene, character_context, previous_prompts, style
            )

        try:
            result = await self._require_live("image").generate_image(
                scene, character_context, previous_prompts, style
            )
        except Exception as e:
            if not self.fallback_enabled:
                raise
            self._log_fallback("Image", e)
            return await self.fake.generate_image(
                scene, character_context, previous_prompts, style
            )

        logger.info(
            "[Image] Generated with live generator",
            extra={"component": "Image", "fallback": False, "size_bytes": len(result.data)},
        )
        return result

    async def generate_video_job(self, prompt: str) -> VideoJobHandle:
        if self.fake_video:
            return await self.fake.generate_video_job(prompt)

        try:
            handle = await self._require_live("video").generate_video_job(prompt)
        except Exception as e:
            if not self.fallback_enabled:
                raise
            self._log_fallback("Video", e)
            return await self.fake.generate_video_job(prompt)

        logger.info(
            f"[Video] Render job started with live generator: {handle.name}",
            extra={"component": "Video", "fallback": False, "operation": handle.name},
        )
        return handle

    async def poll_video_job(self, handle: VideoJobHandle) -> VideoPollResult:
        if handle.provider == "fake":
            return await self.fake.poll_video_job(handle)
        return await self._require_live("video polling").poll_video_job(handle)

    async def fetch_asset(self, asset_ref: str) -> bytes:
        if asset_ref.startswith(FAKE_ASSET_SCHEME):
            return await self.fake.fetch_asset(asset_ref)
        return await self._require_live("asset download").fetch_asset(asset_ref)

    async def extract_command(
        self, text: str, known_names: Sequence[str]
    ) -> CommandClassification:
        backend = self.fake if self.fake_text else self._require_live("command parsing")
        return await backend.extract_command(text, known_names)
