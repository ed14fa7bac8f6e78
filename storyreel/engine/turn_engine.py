"""
Turn engine - produces the turns of a run.

Each turn is built in this order:
- Context from the last five turns and the last three image prompts
- Narrative continuation (fatal on failure)
- Four suggested options (fixed fallback list on failure)
- A continuity-aware illustration (turn is kept without one on failure)
- One transaction that inserts the turn and advances ``current_turn``
"""

import time
import uuid
from typing import List, Optional, Sequence, Tuple

from storyreel.db.manager import DatabaseManager
from storyreel.errors import InvalidInput, InvalidState, StoryReelError
from storyreel.prompts import (
    FALLBACK_OPTIONS,
    NARRATIVE_CONTEXT_TURNS,
    OPENING_CHARACTER_CONTEXT,
    OPENING_OPTIONS,
    OPENING_USER_PROMPT,
    OPTION_COUNT,
    opening_scene_description,
    parse_options,
    previous_image_prompts,
)
from storyreel.providers import GenerationBackend
from storyreel.schemas import NarrativeContext, RunRecord, RunStatus, TurnRecord
from storyreel.storage import BlobStore, image_key
from storyreel.utils.logger import get_logger

from .context import StoryContextProvider
from .run_manager import RunLifecycleManager

logger = get_logger(__name__)


class TurnEngine:
    """
    Builds, generates and stores turns.

    Attributes:
        db: Persistence store
        context: Story and hologram lookups
        runs: Run lifecycle manager (also owns the per-run locks)
        backend: Generation backend
        blob_store: Durable storage for generated images
    """

    def __init__(
        self,
        db: DatabaseManager,
        context: StoryContextProvider,
        runs: RunLifecycleManager,
        backend: GenerationBackend,
        blob_store: BlobStore,
    ):
        self.db = db
        self.context = context
        self.runs = runs
        self.backend = backend
        self.blob_store = blob_store

    async def start_run(
        self, simulation_id: str, hologram_id: str, title: Optional[str] = None
    ) -> Tuple[RunRecord, TurnRecord]:
        """
        Create a run and its opening turn (turn 0).

        The opening turn uses the story's initial scene as narrative, so no
        text model is called. If the opening turn cannot be stored the run
        is removed again.

        Args:
            simulation_id: Story simulation to play
            hologram_id: Hologram the user plays as; must belong to the simulation
            title: Optional run title

        Returns:
            The run (current_turn == 0) and its opening turn

        Raises:
            NotFound: Unknown simulation or hologram
            InvalidInput: Not a story simulation, or foreign hologram
        """
        story = self.context.get_story(simulation_id)
        hologram = self.context.get_hologram(hologram_id)
        if hologram.simulation_id != simulation_id:
            raise InvalidInput("Hologram does not belong to this simulation")

        run = self.runs.create_run(simulation_id, hologram_id, title=title)

        try:
            async with self.runs.lock_for(run.id):
                image_url, image_prompt = await self._illustrate(
                    run.id,
                    opening_scene_description(story),
                    OPENING_CHARACTER_CONTEXT,
                    [],
                    story.image_style,
                )
                turn = self.db.create_turn_and_advance(
                    run.id,
                    user_prompt=OPENING_USER_PROMPT,
                    ai_response=story.initial_scene,
                    image_url=image_url,
                    image_prompt=image_prompt,
                    suggested_options=list(OPENING_OPTIONS),
                )
        except Exception:
            logger.error(
                f"[Run] Opening turn failed, removing run {run.id}",
                extra={"component": "Run", "run_id": run.id},
            )
            self.db.delete_run(run.id)
            raise

        logger.info(
            f"[Run] Started run {run.id} for {hologram.name} in {story.title}",
            extra={
                "component": "Run",
                "run_id": run.id,
                "simulation_id": simulation_id,
                "has_image": image_url is not None,
            },
        )
        return self.runs.get_run(run.id), turn

    async def submit_turn(self, run_id: str, user_prompt: str) -> TurnRecord:
        """
        Generate and store the next turn of an active run.

        Args:
            run_id: Run to advance
            user_prompt: The user's action

        Returns:
            The stored turn

        Raises:
            InvalidInput: Empty prompt
            NotFound: Unknown run, simulation or hologram
            InvalidState: The run is not active
            ProviderError: Narrative generation failed
        """
        prompt = (user_prompt or "").strip()
        if not prompt:
            raise InvalidInput("Prompt is required")

        async with self.runs.lock_for(run_id):
            run = self.runs.get_run(run_id)
            if run.status != RunStatus.active:
                raise InvalidState(
                    f"Run is {run.status.value}; turns can only be submitted to active runs"
                )

            story = self.context.get_story(run.simulation_id)
            hologram = self.context.get_hologram(run.hologram_id)
            previous_turns = self.db.get_turns_by_run_id(
                run_id, limit=NARRATIVE_CONTEXT_TURNS
            )
            turn_number = run.current_turn + 1
            start_time = time.time()

            logger.info(
                f"[Turn] Generating turn {turn_number} for run {run_id}",
                extra={
                    "component": "Turn",
                    "run_id": run_id,
                    "turn_number": turn_number,
                    "prompt_length": len(prompt),
                    "previous_turns": len(previous_turns),
                },
            )

            context = NarrativeContext(
                story=story,
                hologram=hologram,
                previous_turns=previous_turns,
                user_prompt=prompt,
                turn_number=turn_number,
            )

            narrative = await self.backend.generate_narrative(context)
            options = await self._suggest_options(context, narrative.text)
            image_url, image_prompt = await self._illustrate(
                run_id,
                narrative.text,
                hologram.character_context,
                previous_image_prompts(previous_turns),
                story.image_style,
            )

            turn = self.db.create_turn_and_advance(
                run_id,
                user_prompt=prompt,
                ai_response=narrative.text,
                image_url=image_url,
                image_prompt=image_prompt,
                suggested_options=options,
            )

        logger.info(
            f"[Turn] Turn {turn.turn_number} created for run {run_id}",
            extra={
                "component": "Turn",
                "run_id": run_id,
                "turn_id": turn.id,
                "turn_number": turn.turn_number,
                "has_image": turn.image_url is not None,
                "options_count": len(turn.suggested_options),
                "usage": narrative.usage,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return turn

    async def _suggest_options(self, context: NarrativeContext, narrative: str) -> List[str]:
        try:
            options = await self.backend.generate_options(context, narrative)
        except Exception as e:
            logger.warning(
                f"[Turn] Options generation failed, using fallback options: {e}",
                extra={"component": "Turn", "fallback": True, "error_type": type(e).__name__},
            )
            return list(FALLBACK_OPTIONS)

        if len(options) != OPTION_COUNT:
            options = parse_options("\n".join(options))
        return options

    async def _illustrate(
        self,
        run_id: str,
        scene: str,
        character_context: str,
        previous_prompts: Sequence[str],
        style: str,
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Generate and store a turn illustration.

        Returns:
            (image_url, image_prompt); both None when generation failed. The
            URL is a ``data:`` URL when the blob upload failed.
        """
        try:
            image = await self.backend.generate_image(
                scene, character_context, previous_prompts, style
            )
        except Exception as e:
            logger.warning(
                f"[Image] Image generation failed for run {run_id}, continuing without image: {e}",
                extra={"component": "Image", "run_id": run_id, "error_type": type(e).__name__},
            )
            return None, None

        key = image_key(f"story-image-{uuid.uuid4()}", image.extension)
        try:
            url = await self.blob_store.put(key, image.data, image.content_type)
        except StoryReelError as e:
            logger.warning(
                f"[Blob] Image upload failed for run {run_id}, keeping data URL: {e}",
                extra={"component": "Blob", "run_id": run_id, "key": key},
            )
            url = image.data_url

        return url, image.prompt
