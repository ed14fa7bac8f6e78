"""
Video job orchestrator.

State machine per video row: (none) -> generating -> completed | failed.
There is no background worker; every step is driven by a client calling
``check_video_job`` until the row is terminal.
"""

from typing import Optional

from storyreel.db.manager import DatabaseManager
from storyreel.errors import AlreadyExists, InvalidState, NotFound
from storyreel.prompts import compile_highlight_prompt, select_highlight_turns
from storyreel.providers import GenerationBackend
from storyreel.schemas import RunStatus, VideoJobHandle, VideoRecord, VideoStatus
from storyreel.storage import BlobStore, video_key
from storyreel.utils.logger import get_logger

from .context import StoryContextProvider
from .run_manager import RunLifecycleManager

logger = get_logger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


class VideoOrchestrator:
    """
    Starts highlight renders and steps them to a terminal state.

    Attributes:
        db: Persistence store
        runs: Run lifecycle manager
        context: Story lookups (for the highlight title)
        backend: Generation backend
        blob_store: Durable storage for finished videos
    """

    def __init__(
        self,
        db: DatabaseManager,
        runs: RunLifecycleManager,
        context: StoryContextProvider,
        backend: GenerationBackend,
        blob_store: BlobStore,
    ):
        self.db = db
        self.runs = runs
        self.context = context
        self.backend = backend
        self.blob_store = blob_store

    def get_video(self, video_id: str) -> VideoRecord:
        video = self.db.get_video(video_id)
        if not video:
            raise NotFound("Video not found")
        return video

    def get_latest_video(self, run_id: str) -> Optional[VideoRecord]:
        videos = self.db.get_videos_by_run_id(run_id)
        return videos[0] if videos else None

    async def start_video_job(self, run_id: str) -> VideoRecord:
        """
        Start the highlight render for a completed run.

        Either a row at ``generating`` exists afterwards or nothing was
        written. A failed earlier attempt does not block a new one.

        Raises:
            NotFound: Unknown run
            InvalidState: Run not completed, or it has no turns
            AlreadyExists: A generating or completed video exists for the run
            ProviderError: The render job could not be started
        """
        run = self.runs.get_run(run_id)
        if run.status != RunStatus.completed:
            raise InvalidState("Run must be completed before generating video")

        if any(v.status != VideoStatus.failed for v in self.db.get_videos_by_run_id(run_id)):
            raise AlreadyExists("Video already exists for this run")

        turns = self.db.get_turns_by_run_id(run_id)
        if not turns:
            raise InvalidState("No turns found for this run")

        story = self.context.get_story(run.simulation_id)
        prompt = compile_highlight_prompt(story.title, turns)

        handle = await self.backend.generate_video_job(prompt)
        try:
            video = self.db.create_video(run_id, prompt, handle.serialize())
        except AlreadyExists:
            logger.warning(
                f"[Video] Concurrent start for run {run_id}; render {handle.name} is orphaned",
                extra={
                    "component": "Video",
                    "run_id": run_id,
                    "provider": handle.provider,
                    "operation": handle.name,
                },
            )
            raise

        logger.info(
            f"[Video] Started video {video.id} for run {run_id}",
            extra={
                "component": "Video",
                "run_id": run_id,
                "video_id": video.id,
                "provider": handle.provider,
                "operation": handle.name,
                "scenes": len(select_highlight_turns(turns)),
            },
        )
        return video

    async def check_video_job(self, video_id: str) -> VideoRecord:
        """
        Step a video job once.

        A terminal row is returned unchanged. A generating row is polled;
        on success the asset is downloaded, stored durably and the row
        completed. A download or upload error is raised and the row stays
        generating so the next check retries it.

        Raises:
            NotFound: Unknown video
            ProviderError: Polling or downloading failed
            PersistenceError: The blob store or database write failed
        """
        video = self.get_video(video_id)
        if video.status != VideoStatus.generating:
            return video

        try:
            handle = VideoJobHandle.deserialize(video.operation_payload or "")
        except ValueError as e:
            logger.error(
                f"[Video] Unreadable job handle on video {video_id}, marking failed: {e}",
                extra={"component": "Video", "video_id": video_id},
            )
            self.db.fail_video(video_id)
            return self.get_video(video_id)

        result = await self.backend.poll_video_job(handle)
        if not result.terminal:
            return video

        if result.status != VideoStatus.completed or not result.asset_ref:
            if self.db.fail_video(video_id):
                logger.warning(
                    f"[Video] Render failed for video {video_id}",
                    extra={"component": "Video", "video_id": video_id, "run_id": video.run_id},
                )
            return self.get_video(video_id)

        data = await self.backend.fetch_asset(result.asset_ref)
        url = await self.blob_store.put(video_key(video_id), data, VIDEO_CONTENT_TYPE)

        if self.db.complete_video(video_id, url):
            logger.info(
                f"[Video] Video {video_id} completed",
                extra={
                    "component": "Video",
                    "video_id": video_id,
                    "run_id": video.run_id,
                    "size_bytes": len(data),
                    "video_url": url,
                },
            )
        return self.get_video(video_id)

    async def check_latest_video(self, run_id: str) -> VideoRecord:
        """Check the most recent video job of a run"""
        video = self.get_latest_video(run_id)
        if not video:
            raise NotFound("No video found for this run")
        return await self.check_video_job(video.id)
