"""
Shared fixtures: isolated settings, database, blob store and a seeded story.
"""

from typing import Tuple

import pytest

from storyreel.config import Settings
from storyreel.db.manager import DatabaseManager
from storyreel.providers import FakeGenerationBackend
from storyreel.schemas import StoryDefinition, build_story_simulation_object
from storyreel.seed import DEMO_STORIES
from storyreel.services import Services, build_services
from storyreel.storage import LocalBlobStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temp directory, fake generators, no delays"""
    return Settings(
        _env_file=None,
        openai_api_key="",
        google_api_key="",
        use_fake_text_generator=True,
        use_fake_image_generator=True,
        use_fake_video_generator=True,
        fake_image_delay_ms=0,
        fake_video_delay_ms=0,
        retry_max_attempts=3,
        retry_backoff_ms=0,
        database_path=str(tmp_path / "storyreel-test.db"),
        blob_storage_dir=str(tmp_path / "blobs"),
        blob_public_base_url="/blobs",
        seed_demo_data=False,
    )


@pytest.fixture
def db(settings) -> DatabaseManager:
    return DatabaseManager(settings.database_path)


@pytest.fixture
def blob_store(settings) -> LocalBlobStore:
    return LocalBlobStore(settings.blob_storage_dir, settings.blob_public_base_url)


@pytest.fixture
def fake_backend() -> FakeGenerationBackend:
    return FakeGenerationBackend(image_delay_ms=0, video_delay_ms=0)


@pytest.fixture
def services(settings, db, blob_store) -> Services:
    return build_services(settings, db=db, blob_store=blob_store)


@pytest.fixture
def story() -> StoryDefinition:
    return StoryDefinition(**DEMO_STORIES[0])


@pytest.fixture
def seeded_story(db, story) -> Tuple[str, str]:
    """A story simulation with one hologram; returns (simulation_id, hologram_id)"""
    simulation_id = db.save_simulation(build_story_simulation_object(story))
    hologram = db.save_hologram(
        simulation_id,
        "Captain Nova",
        acting_instructions=["Bold", "Curious"],
        descriptions=["Starship captain", "silver flight jacket"],
        wardrobe=["Flight jacket"],
    )
    return simulation_id, hologram.id
