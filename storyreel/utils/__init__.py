"""
Utility modules for the StoryReel engine
"""

from .logger import get_logger, setup_logging
from .retry import is_retryable_error, to_provider_error, with_retry

__all__ = [
    "get_logger",
    "setup_logging",
    "is_retryable_error",
    "to_provider_error",
    "with_retry",
]
