"""
Error taxonomy for the StoryReel engine.

Every public operation either returns a result or raises one of these.
Each class carries the HTTP status the API layer answers with.
"""

from typing import Optional


class StoryReelError(Exception):
    """Base class for all engine errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(StoryReelError):
    """Bad caller arguments"""

    status_code = 400


class NotFound(StoryReelError):
    """A referenced entity does not exist"""

    status_code = 404


class InvalidState(StoryReelError):
    """Operation not valid for the entity's current state"""

    status_code = 409


class AlreadyExists(StoryReelError):
    """Duplicate creation, e.g. a second highlight video for a run"""

    status_code = 409


class ProviderError(StoryReelError):
    """Failure reported by an external generation provider"""

    status_code = 502

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class TransientProviderError(ProviderError):
    """Network, rate-limit or 5xx failure; safe to retry"""

    status_code = 503


class FatalProviderError(ProviderError):
    """Schema, validation or auth failure; never retried"""

    status_code = 502


class StoryDefinitionError(FatalProviderError):
    """A stored story definition failed validation at read time"""

    status_code = 422


class PersistenceError(StoryReelError):
    """Database or blob store write failure"""

    status_code = 500
