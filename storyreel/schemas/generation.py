"""
Value types exchanged with the generation backend.
"""

import base64
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .hologram import Hologram
from .records import TurnRecord, VideoStatus
from .story import StoryDefinition


class NarrativeContext(BaseModel):
    """Everything the narrator needs to continue a run"""

    story: StoryDefinition
    hologram: Hologram
    previous_turns: List[TurnRecord] = Field(
        default_factory=list, description="Prior turns, ascending by turn_number"
    )
    user_prompt: str
    turn_number: int


class NarrativeResult(BaseModel):
    """Narrative continuation text with token usage, when reported"""

    text: str
    usage: Optional[Dict[str, Any]] = None


class ImageResult(BaseModel):
    """A generated image and the exact prompt used to produce it"""

    prompt: str
    data: bytes
    content_type: str = "image/png"
    provider: str = "live"

    @property
    def extension(self) -> str:
        return {
            "image/png": "png",
            "image/jpeg": "jpg",
            "image/svg+xml": "svg",
            "image/webp": "webp",
        }.get(self.content_type, "bin")

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class VideoJobHandle(BaseModel):
    """
    Opaque, serializable handle to a long-running render job.

    Tagged by ``provider`` so a stateless poll can route it back to the
    generator that created it. Only ``done`` and ``result_asset_ref`` are
    part of the contract; ``payload`` is provider-defined and never
    inspected outside the provider that produced it.
    """

    provider: Literal["veo", "fake"]
    name: str
    done: bool = False
    result_asset_ref: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        return self.done

    def serialize(self) -> str:
        return self.model_dump_json()

    @classmethod
    def deserialize(cls, raw: str) -> "VideoJobHandle":
        return cls.model_validate_json(raw)


class VideoPollResult(BaseModel):
    """Outcome of one poll of a render job"""

    terminal: bool
    status: VideoStatus
    asset_ref: Optional[str] = Field(
        default=None, description="Provider-side reference to the finished asset"
    )
    handle: VideoJobHandle
