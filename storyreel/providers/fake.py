"""
Deterministic fake generation backend.

Produces synthetic narrative, SVG placeholder images and a minimal MP4
without any external service. Output depends only on the inputs, so tests
and credential-free setups get reproducible content.
"""

import asyncio
from html import escape
from typing import Dict, List, Sequence

from storyreel.errors import FatalProviderError, NotFound
from storyreel.prompts import OPTION_COUNT, build_image_prompt
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

from .backend import FAKE_ASSET_SCHEME, GenerationBackend

logger = get_logger(__name__)

COLOR_SCHEMES: List[Dict[str, str]] = [
    {"primary": "#1e3a8a", "secondary": "#3b82f6", "accent": "#fbbf24", "text": "#ffffff"},  # Blue
    {"primary": "#7c2d12", "secondary": "#dc2626", "accent": "#f59e0b", "text": "#ffffff"},  # Red
    {"primary": "#14532d", "secondary": "#16a34a", "accent": "#84cc16", "text": "#ffffff"},  # Green
    {"primary": "#581c87", "secondary": "#9333ea", "accent": "#a855f7", "text": "#ffffff"},  # Purple
    {"primary": "#7c2d12", "secondary": "#ea580c", "accent": "#f97316", "text": "#ffffff"},  # Orange
]

DISPLAY_PROMPT_CHARS = 100


def prompt_hash(text: str) -> int:
    """
    32-bit string hash, ``h = h * 31 + c`` with signed overflow, made positive.

    Args:
        text: String to hash

    Returns:
        Non-negative integer, identical for identical input
    """
    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return abs(value)


def color_scheme_for(text: str) -> Dict[str, str]:
    return COLOR_SCHEMES[prompt_hash(text) % len(COLOR_SCHEMES)]


def render_placeholder_svg(prompt: str) -> str:
    """Render the placeholder illustration for ``prompt``."""
    digest = prompt_hash(prompt)
    colors = COLOR_SCHEMES[digest % len(COLOR_SCHEMES)]
    display_prompt = (
        prompt[:DISPLAY_PROMPT_CHARS] + "..."
        if len(prompt) > DISPLAY_PROMPT_CHARS
        else prompt
    )

    return f"""<svg width="1024" height="1024" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="bg" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:{colors['primary']};stop-opacity:1" />
      <stop offset="100%" style="stop-color:{colors['secondary']};stop-opacity:1" />
    </linearGradient>
  </defs>
  <rect width="1024" height="1024" fill="url(#bg)" />
  <rect x="50" y="50" width="924" height="924" fill="none" stroke="{colors['accent']}" stroke-width="4" rx="20" />
  <text x="512" y="200" font-family="Arial, sans-serif" font-size="48" font-weight="bold"
        text-anchor="middle" fill="{colors['text']}" stroke="{colors['accent']}" stroke-width="2">FAKE IMAGE GENERATOR</text>
  <text x="512" y="300" font-family="Arial, sans-serif" font-size="24"
        text-anchor="middle" fill="{colors['text']}">Scene: {escape(display_prompt, quote=True)}</text>
  <circle cx="200" cy="400" r="80" fill="{colors['accent']}" opacity="0.3" />
  <circle cx="824" cy="600" r="60" fill="{colors['accent']}" opacity="0.3" />
  <rect x="300" y="500" width="200" height="100" fill="{colors['accent']}" opacity="0.2" rx="10" />
  <text x="512" y="850" font-family="Arial, sans-serif" font-size="16"
        text-anchor="middle" fill="{colors['text']}" opacity="0.5">Hash: {digest:x}</text>
</svg>
"""


def minimal_mp4() -> bytes:
    """A tiny MP4 structure (ftyp + mdat) so signature checks succeed."""
    ftyp = (
        (24).to_bytes(4, "big")
        + b"ftyp"
        + b"isom"
        + (0).to_bytes(4, "big")
        + b"isom"
        + b"mp41"
    )
    payload = b"\x00\x00\x00\x00"
    mdat = (8 + len(payload)).to_bytes(4, "big") + b"mdat" + payload
    return ftyp + mdat


class FakeGenerationBackend(GenerationBackend):
    """Synthetic generator with simulated latency"""

    name = "fake"

    def __init__(self, image_delay_ms: int = 500, video_delay_ms: int = 1000):
        self.image_delay_ms = image_delay_ms
        self.video_delay_ms = video_delay_ms

    async def _delay(self, delay_ms: int) -> None:
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)

    async def generate_narrative(self, context: NarrativeContext) -> NarrativeResult:
        story = context.story
        text = (
            f'{context.hologram.name} decides to "{context.user_prompt}". '
            f"Across {story.setting}, the {story.genre} tale of {story.title} shifts "
            f"in response, and turn {context.turn_number} closes on a new choice "
            f"that cannot be put off for long."
        )
        return NarrativeResult(text=text, usage=None)

    async def generate_options(
        self, context: NarrativeContext, narrative: str
    ) -> List[str]:
        name = context.hologram.name
        options = [
            f"{name} presses forward to see where this leads",
            f"{name} stops to study the surroundings",
            f"{name} looks for someone who can help",
            f"{name} turns back and tries another way",
        ]
        return options[:OPTION_COUNT]

    async def generate_image(
        self,
        scene: str,
        character_context: str,
        previous_prompts: Sequence[str],
        style: str = "cinematic",
    ) -> ImageResult:
        prompt = build_image_prompt(scene, character_context, previous_prompts, style)
        await self._delay(self.image_delay_ms)

        svg = render_placeholder_svg(prompt)
        logger.debug(
            f"[Image] Fake image generated (hash {prompt_hash(prompt):x})",
            extra={"component": "Image", "provider": "fake"},
        )
        return ImageResult(
            prompt=prompt,
            data=svg.encode("utf-8"),
            content_type="image/svg+xml",
            provider="fake",
        )

    async def generate_video_job(self, prompt: str) -> VideoJobHandle:
        await self._delay(self.video_delay_ms)
        digest = f"{prompt_hash(prompt):x}"
        return VideoJobHandle(
            provider="fake",
            name=f"fake-operations/{digest}",
            done=True,
            result_asset_ref=f"{FAKE_ASSET_SCHEME}video/{digest}",
        )

    async def poll_video_job(self, handle: VideoJobHandle) -> VideoPollResult:
        if handle.result_asset_ref:
            return VideoPollResult(
                terminal=True,
                status=VideoStatus.completed,
                asset_ref=handle.result_asset_ref,
                handle=handle,
            )
        return VideoPollResult(terminal=True, status=VideoStatus.failed, handle=handle)

    async def fetch_asset(self, asset_ref: str) -> bytes:
        if not asset_ref.startswith(FAKE_ASSET_SCHEME):
            raise NotFound(f"Not a fake asset: {asset_ref}")
        return minimal_mp4()

    async def extract_command(
        self, text: str, known_names: Sequence[str]
    ) -> CommandClassification:
        # No structured extractor offline; callers use their heuristic tier
        raise FatalProviderError("Fake generator does not support command extraction")
