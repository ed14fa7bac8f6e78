"""
Run, Turn and Video records as returned by the persistence layer.

Ownership: a Run owns its Turns and Videos.
"""

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RunStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    abandoned = "abandoned"


class VideoStatus(str, enum.Enum):
    generating = "generating"
    completed = "completed"
    failed = "failed"


TERMINAL_RUN_STATUSES = {RunStatus.completed, RunStatus.abandoned}
TERMINAL_VIDEO_STATUSES = {VideoStatus.completed, VideoStatus.failed}


class RunRecord(BaseModel):
    """One playthrough of a story simulation"""

    id: str
    simulation_id: str
    hologram_id: str
    status: RunStatus = RunStatus.active
    current_turn: int = Field(
        default=-1, description="turn_number of the latest turn; -1 before the opening turn"
    )
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TurnRecord(BaseModel):
    """One user-action/system-response exchange. Immutable once stored."""

    id: str
    run_id: str
    turn_number: int = Field(..., ge=0)
    user_prompt: str
    ai_response: str
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    suggested_options: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class VideoRecord(BaseModel):
    """One highlight-render job for a run"""

    id: str
    run_id: str
    status: VideoStatus = VideoStatus.generating
    generation_prompt: Optional[str] = None
    video_url: Optional[str] = None
    operation_payload: Optional[str] = Field(
        default=None,
        description="Serialized render-job handle; cleared once the job is terminal",
    )
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_VIDEO_STATUSES
