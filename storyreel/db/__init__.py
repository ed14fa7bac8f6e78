"""
Database package for StoryReel.

This package provides SQLite-based persistence for simulations, holograms,
runs, turns and highlight videos.
"""

from .manager import DatabaseManager

__all__ = ["DatabaseManager"]
