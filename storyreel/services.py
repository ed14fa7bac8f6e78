"""
Explicit wiring of the engine's services.

Everything is constructed from a Settings instance and passed down; there
are no module-level service singletons, so tests can swap the generation
backend or blob store freely.
"""

from dataclasses import dataclass
from typing import Optional

from storyreel.config import Settings
from storyreel.db.manager import DatabaseManager
from storyreel.engine import (
    CommandClassifier,
    RunLifecycleManager,
    StoryContextProvider,
    TurnEngine,
    VideoOrchestrator,
)
from storyreel.providers import GenerationBackend, create_generation_backend
from storyreel.storage import BlobStore, LocalBlobStore


@dataclass
class Services:
    settings: Settings
    db: DatabaseManager
    blob_store: BlobStore
    backend: GenerationBackend
    context: StoryContextProvider
    runs: RunLifecycleManager
    turns: TurnEngine
    videos: VideoOrchestrator
    classifier: CommandClassifier


def build_services(
    settings: Settings,
    backend: Optional[GenerationBackend] = None,
    blob_store: Optional[BlobStore] = None,
    db: Optional[DatabaseManager] = None,
) -> Services:
    """
    Build the service graph for one application instance.

    Args:
        settings: Application settings
        backend: Generation backend override; built from settings when omitted
        blob_store: Blob store override; a LocalBlobStore when omitted
        db: Database manager override
    """
    db = db or DatabaseManager(settings.database_path)
    blob_store = blob_store or LocalBlobStore(
        settings.blob_storage_dir, settings.blob_public_base_url
    )
    backend = backend or create_generation_backend(settings)

    context = StoryContextProvider(db)
    runs = RunLifecycleManager(db)
    return Services(
        settings=settings,
        db=db,
        blob_store=blob_store,
        backend=backend,
        context=context,
        runs=runs,
        turns=TurnEngine(db, context, runs, backend, blob_store),
        videos=VideoOrchestrator(db, runs, context, backend, blob_store),
        classifier=CommandClassifier(backend),
    )
