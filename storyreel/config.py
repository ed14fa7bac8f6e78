"""
Configuration management for the StoryReel engine
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Text generation (narrative, options, command extraction)
    openai_api_base: str = Field(default="https://api.openai.com/v1")
    openai_api_key: str = Field(default="")
    model_name: str = Field(default="gpt-4o-mini")
    narrative_temperature: float = Field(default=0.8)
    narrative_max_tokens: int = Field(default=1000)
    options_temperature: float = Field(default=0.9)
    options_max_tokens: int = Field(default=200)

    # Media generation (images and highlight videos)
    google_api_key: str = Field(default="")
    google_api_base: str = Field(default=DEFAULT_GOOGLE_API_BASE)
    image_model_name: str = Field(default="imagen-4.0-generate-001")
    video_model_name: str = Field(default="veo-3.1-generate-preview")
    provider_timeout_seconds: float = Field(default=60.0)

    # Live/Fake selection per capability.
    # None means auto: use the fake generator when the credential is missing.
    use_fake_text_generator: Optional[bool] = Field(default=None)
    use_fake_image_generator: Optional[bool] = Field(default=None)
    use_fake_video_generator: Optional[bool] = Field(default=None)
    fake_fallback_enabled: bool = Field(
        default=True,
        description="Fall back to the fake generator when a live image/video call fails",
    )
    fake_image_delay_ms: int = Field(default=500)
    fake_video_delay_ms: int = Field(default=1000)

    # Retry policy for provider calls
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_backoff_ms: int = Field(default=1000, ge=0)

    # Persistence
    database_path: str = Field(
        default="data/storyreel.db",
        description="SQLite database file path for runs, turns and videos",
    )
    blob_storage_dir: str = Field(
        default="data/blobs",
        description="Directory holding durable image and video assets",
    )
    blob_public_base_url: str = Field(default="/blobs")

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_file: Optional[str] = Field(default=None)
    seed_demo_data: bool = Field(default=True)

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def fake_text_enabled(self) -> bool:
        if self.use_fake_text_generator is None:
            return not self.openai_api_key
        return self.use_fake_text_generator

    @property
    def fake_image_enabled(self) -> bool:
        if self.use_fake_image_generator is None:
            return not self.google_api_key
        return self.use_fake_image_generator

    @property
    def fake_video_enabled(self) -> bool:
        if self.use_fake_video_generator is None:
            return not self.google_api_key
        return self.use_fake_video_generator

    @property
    def retry_backoff_seconds(self) -> float:
        return self.retry_backoff_ms / 1000.0


# Settings instance for the server entry point
settings = Settings()
