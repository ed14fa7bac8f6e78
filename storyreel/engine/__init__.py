"""
Core engine components for the StoryReel engine
"""

from .classifier import CommandClassifier, heuristic_classify, is_hologram_command
from .context import StoryContextProvider
from .run_manager import RunLifecycleManager
from .turn_engine import TurnEngine
from .video_orchestrator import VideoOrchestrator

__all__ = [
    "StoryContextProvider",
    "RunLifecycleManager",
    "TurnEngine",
    "VideoOrchestrator",
    "CommandClassifier",
    "heuristic_classify",
    "is_hologram_command",
]
