"""
Live generation backend.

Text goes through an OpenAI-compatible chat provider (LangChain). Images
use the Imagen ``:predict`` REST endpoint and highlight videos the Veo
``:predictLongRunning`` endpoint, both over httpx with the Google API key.

Narrative, options, image and command extraction calls are wrapped in the
retry executor. Video job creation and polling are not: the client-driven
poll loop is their retry.
"""

import base64
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from storyreel.config import Settings
from storyreel.errors import FatalProviderError
from storyreel.prompts import (
    COMMAND_SCHEMA,
    build_command_messages,
    build_image_prompt,
    build_narrative_messages,
    build_options_prompt,
    parse_options,
)
from storyreel.schemas import (
    CommandClassification,
    ImageResult,
    NarrativeContext,
    NarrativeResult,
    VideoJobHandle,
    VideoPollResult,
    VideoStatus,
)
from storyreel.utils.logger import get_logger
from storyreel.utils.retry import to_provider_error, with_retry

from .backend import GenerationBackend
from .base import BaseProvider

logger = get_logger(__name__)


class LiveGenerationBackend(GenerationBackend):
    """
    Generator backed by real model endpoints.

    Attributes:
        settings: Application settings (models, keys, retry policy)
        text_provider: Chat provider for narrative, options and commands
    """

    name = "live"

    def __init__(self, settings: Settings, text_provider: Optional[BaseProvider] = None):
        self.settings = settings
        self.text_provider = text_provider
        self.api_base = settings.google_api_base.rstrip("/")

    # ==================== Helpers ====================

    def _require_text_provider(self) -> BaseProvider:
        if self.text_provider is None:
            raise FatalProviderError("No text provider configured")
        return self.text_provider

    async def _retry(self, operation, operation_name: str):
        return await with_retry(
            operation,
            max_attempts=self.settings.retry_max_attempts,
            base_delay=self.settings.retry_backoff_seconds,
            operation_name=operation_name,
        )

    def _google_headers(self) -> Dict[str, str]:
        if not self.settings.google_api_key:
            raise FatalProviderError("Google API key is required for media generation")
        return {
            "x-goog-api-key": self.settings.google_api_key,
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.provider_timeout_seconds)

    # ==================== Text ====================

    async def generate_narrative(self, context: NarrativeContext) -> NarrativeResult:
        provider = self._require_text_provider()
        messages = provider._convert_messages(
            build_narrative_messages(
                context.story,
                context.hologram,
                context.previous_turns,
                context.user_prompt,
                context.turn_number,
            )
        )

        async def call() -> NarrativeResult:
            response = await provider.chat(
                messages,
                temperature=self.settings.narrative_temperature,
                max_tokens=self.settings.narrative_max_tokens,
            )
            text = response.content.strip()
            if not text:
                raise FatalProviderError("Narrator returned an empty response")
            return NarrativeResult(text=text, usage=response.usage)

        return await self._retry(call, "generate_narrative")

    async def generate_options(
        self, context: NarrativeContext, narrative: str
    ) -> List[str]:
        provider = self._require_text_provider()
        messages = [HumanMessage(content=build_options_prompt(context.hologram, narrative))]

        async def call() -> List[str]:
            response = await provider.chat(
                messages,
                temperature=self.settings.options_temperature,
                max_tokens=self.settings.options_max_tokens,
            )
            return parse_options(response.content)

        return await self._retry(call, "generate_options")

    async def extract_command(
        self, text: str, known_names: Sequence[str]
    ) -> CommandClassification:
        provider = self._require_text_provider()
        messages = provider._convert_messages(build_command_messages(text, known_names))

        async def call() -> CommandClassification:
            response = await provider.chat(
                messages, json_schema=COMMAND_SCHEMA, temperature=0.3
            )
            data = response.structured or {}
            try:
                return CommandClassification(
                    action=data.get("action"),
                    target_entity=data.get("targetHologram") or None,
                    target_simulation=data.get("targetSimulation") or None,
                )
            except ValidationError as e:
                raise FatalProviderError(
                    f"Command extraction returned an invalid object: {e}", original_error=e
                ) from e

        return await self._retry(call, "extract_command")

    # ==================== Images ====================

    async def _request_image(self, prompt: str) -> Tuple[bytes, str]:
        """One Imagen predict call; returns image bytes and MIME type."""
        url = f"{self.api_base}/models/{self.settings.image_model_name}:predict"
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1, "aspectRatio": "1:1"},
        }
        try:
            async with self._client() as client:
                response = await client.post(url, json=body, headers=self._google_headers())
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise to_provider_error(e, "Image generation API error") from e

        predictions = data.get("predictions") or []
        encoded = predictions[0].get("bytesBase64Encoded") if predictions else None
        if not encoded:
            raise FatalProviderError("No image generated by image API")

        return base64.b64decode(encoded), predictions[0].get("mimeType", "image/png")

    async def generate_image(
        self,
        scene: str,
        character_context: str,
        previous_prompts: Sequence[str],
        style: str = "cinematic",
    ) -> ImageResult:
        prompt = build_image_prompt(scene, character_context, previous_prompts, style)
        start_time = time.time()

        data, content_type = await self._retry(
            lambda: self._request_image(prompt), "generate_image"
        )

        logger.info(
            f"[Image] Image generated ({len(data)} bytes)",
            extra={
                "component": "Image",
                "model": self.settings.image_model_name,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                "previous_prompts": len(previous_prompts),
            },
        )
        return ImageResult(prompt=prompt, data=data, content_type=content_type, provider="live")

    # ==================== Video ====================

    async def generate_video_job(self, prompt: str) -> VideoJobHandle:
        url = f"{self.api_base}/models/{self.settings.video_model_name}:predictLongRunning"
        body = {"instances": [{"prompt": prompt}]}
        try:
            async with self._client() as client:
                response = await client.post(url, json=body, headers=self._google_headers())
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise to_provider_error(e, "Video generation API error") from e

        name = data.get("name")
        if not name:
            raise FatalProviderError("Video generation API returned no operation name")

        logger.info(
            f"[Video] Render job started: {name}",
            extra={"component": "Video", "operation": name, "prompt_chars": len(prompt)},
        )
        return VideoJobHandle(provider="veo", name=name, done=bool(data.get("done")))

    @staticmethod
    def _result_uri(operation: Dict[str, Any]) -> Optional[str]:
        samples = (
            (operation.get("response") or {})
            .get("generateVideoResponse", {})
            .get("generatedSamples")
            or []
        )
        if not samples:
            return None
        return (samples[0].get("video") or {}).get("uri")

    async def poll_video_job(self, handle: VideoJobHandle) -> VideoPollResult:
        url = f"{self.api_base}/{handle.name}"
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._google_headers())
                response.raise_for_status()
                operation = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise to_provider_error(e, "Video status API error") from e

        if not operation.get("done"):
            logger.debug(f"[Video] Render job still running: {handle.name}")
            return VideoPollResult(terminal=False, status=VideoStatus.generating, handle=handle)

        uri = self._result_uri(operation)
        updated = handle.model_copy(update={"done": True, "result_asset_ref": uri})
        if uri:
            logger.info(
                f"[Video] Render job completed: {handle.name}",
                extra={"component": "Video", "operation": handle.name},
            )
            return VideoPollResult(
                terminal=True, status=VideoStatus.completed, asset_ref=uri, handle=updated
            )

        logger.error(
            f"[Video] Render job finished without a video: {handle.name}",
            extra={
                "component": "Video",
                "operation": handle.name,
                "error": str(operation.get("error"))[:300],
            },
        )
        return VideoPollResult(terminal=True, status=VideoStatus.failed, handle=updated)

    async def fetch_asset(self, asset_ref: str) -> bytes:
        headers = {"x-goog-api-key": self.settings.google_api_key}
        try:
            async with self._client() as client:
                response = await client.get(asset_ref, headers=headers, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise to_provider_error(e, "Video download error") from e

        logger.info(
            f"[Video] Asset downloaded ({len(response.content)} bytes)",
            extra={"component": "Video", "size_bytes": len(response.content)},
        )
        return response.content
