"""
Schemas for the StoryReel engine
"""

from .generation import (
    ImageResult,
    NarrativeContext,
    NarrativeResult,
    VideoJobHandle,
    VideoPollResult,
)
from .hologram import CommandAction, CommandClassification, Hologram
from .records import (
    TERMINAL_RUN_STATUSES,
    TERMINAL_VIDEO_STATUSES,
    RunRecord,
    RunStatus,
    TurnRecord,
    VideoRecord,
    VideoStatus,
)
from .story import (
    STORY_SCHEMA_VERSION,
    StoryArc,
    StoryCharacter,
    StoryDefinition,
    build_story_simulation_object,
    parse_story_definition,
)

__all__ = [
    # Story definitions
    "StoryDefinition",
    "StoryArc",
    "StoryCharacter",
    "STORY_SCHEMA_VERSION",
    "parse_story_definition",
    "build_story_simulation_object",
    # Holograms
    "Hologram",
    "CommandAction",
    "CommandClassification",
    # Records
    "RunRecord",
    "RunStatus",
    "TurnRecord",
    "VideoRecord",
    "VideoStatus",
    "TERMINAL_RUN_STATUSES",
    "TERMINAL_VIDEO_STATUSES",
    # Generation values
    "NarrativeContext",
    "NarrativeResult",
    "ImageResult",
    "VideoJobHandle",
    "VideoPollResult",
]
