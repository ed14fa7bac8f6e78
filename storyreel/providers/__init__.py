"""
Text providers and generation backends for the StoryReel engine
"""

from .backend import GenerationBackend, SelectingGenerationBackend
from .base import BaseProvider, ProviderResponse
from .factory import create_generation_backend, create_text_provider
from .fake import FakeGenerationBackend
from .live import LiveGenerationBackend
from .openai import OpenAIProvider

__all__ = [
    "BaseProvider",
    "ProviderResponse",
    "OpenAIProvider",
    "GenerationBackend",
    "SelectingGenerationBackend",
    "LiveGenerationBackend",
    "FakeGenerationBackend",
    "create_text_provider",
    "create_generation_backend",
]
