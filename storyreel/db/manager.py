"""
Database manager for StoryReel.

This module provides a high-level interface for database operations on
simulations, holograms, runs, turns and videos, with automatic connection
management. It is the single source of truth for run state; nothing is
cached in memory.
"""

import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession
from sqlalchemy.orm import sessionmaker

from storyreel.db.schema import Base, Hologram, Run, Simulation, Turn, Video
from storyreel.errors import AlreadyExists, NotFound, PersistenceError
from storyreel.schemas import Hologram as HologramModel
from storyreel.schemas import (
    RunRecord,
    RunStatus,
    TurnRecord,
    VideoRecord,
    VideoStatus,
)
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages database operations for the StoryReel engine.

    Besides plain CRUD this class owns the two serialization primitives the
    engine relies on: the atomic "insert turn and advance current_turn"
    transaction and the conditional "leave generating" update for videos.

    Attributes:
        db_path: Path to the SQLite database file
        engine: SQLAlchemy engine for database connections
        SessionLocal: Factory for creating database sessions
    """

    def __init__(self, db_path: str = "data/storyreel.db", turn_conflict_retries: int = 3):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file (created if doesn't exist)
            turn_conflict_retries: Attempts for the turn-number compare-and-swap
        """
        self.db_path = db_path
        self.turn_conflict_retries = turn_conflict_retries

        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,  # Set to True for SQL debugging
            connect_args={"check_same_thread": False},  # Allow multi-threading
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"[DB] Database initialized at {db_path}")

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[DBSession]:
        """Yield a session, commit on success, roll back and wrap store failures."""
        db: DBSession = self.SessionLocal()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[DB] Failed to {operation}: {e}")
            raise PersistenceError(f"Failed to {operation}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ==================== Converters ====================

    @staticmethod
    def _hologram_to_model(row: Hologram) -> HologramModel:
        return HologramModel(
            id=row.id,
            simulation_id=row.simulation_id,
            name=row.name,
            acting_instructions=list(row.acting_instructions or []),
            descriptions=list(row.descriptions or []),
            wardrobe=list(row.wardrobe or []),
        )

    @staticmethod
    def _run_to_record(row: Run) -> RunRecord:
        return RunRecord(
            id=row.id,
            simulation_id=row.simulation_id,
            hologram_id=row.hologram_id,
            status=RunStatus(row.status),
            current_turn=row.current_turn,
            title=row.title,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _turn_to_record(row: Turn) -> TurnRecord:
        return TurnRecord(
            id=row.id,
            run_id=row.run_id,
            turn_number=row.turn_number,
            user_prompt=row.user_prompt,
            ai_response=row.ai_response,
            image_url=row.image_url,
            image_prompt=row.image_prompt,
            suggested_options=list(row.suggested_options or []),
            created_at=row.created_at,
        )

    @staticmethod
    def _video_to_record(row: Video) -> VideoRecord:
        return VideoRecord(
            id=row.id,
            run_id=row.run_id,
            status=VideoStatus(row.status),
            generation_prompt=row.generation_prompt,
            video_url=row.video_url,
            operation_payload=row.operation_payload,
            created_at=row.created_at,
            completed_at=row.completed_at,
        )

    # ==================== Simulation Operations ====================

    def save_simulation(
        self, simulation_object: Dict[str, Any], simulation_id: Optional[str] = None
    ) -> str:
        """
        Insert or replace a simulation.

        Args:
            simulation_object: Decoded simulation object (stored as JSON)
            simulation_id: Optional explicit ID; generated when omitted

        Returns:
            The simulation ID
        """
        with self._transaction("save simulation") as db:
            existing = None
            if simulation_id:
                existing = (
                    db.query(Simulation).filter(Simulation.id == simulation_id).first()
                )
            if existing:
                existing.simulation_object = simulation_object
                existing.updated_at = datetime.utcnow()  # type: ignore
                simulation = existing
            else:
                simulation = Simulation(
                    id=simulation_id, simulation_object=simulation_object
                )
                db.add(simulation)
            db.flush()
            saved_id = simulation.id

        logger.debug(f"[DB] Saved simulation {saved_id}")
        return saved_id

    def get_simulation(self, simulation_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a simulation by ID.

        Returns:
            Dictionary with id, status and the raw simulation_object, or None
        """
        db: DBSession = self.SessionLocal()
        try:
            row = db.query(Simulation).filter(Simulation.id == simulation_id).first()
            if row:
                return {
                    "id": row.id,
                    "status": row.status,
                    "simulation_object": row.simulation_object,
                    "created_at": row.created_at.isoformat() if row.created_at else None,
                }
            return None
        finally:
            db.close()

    def count_simulations(self) -> int:
        db: DBSession = self.SessionLocal()
        try:
            return db.query(Simulation).count()
        finally:
            db.close()

    # ==================== Hologram Operations ====================

    def save_hologram(
        self,
        simulation_id: str,
        name: str,
        acting_instructions: List[str],
        descriptions: List[str],
        wardrobe: Optional[List[str]] = None,
        hologram_id: Optional[str] = None,
    ) -> HologramModel:
        """Create a hologram in a simulation."""
        with self._transaction("save hologram") as db:
            row = Hologram(
                id=hologram_id,
                simulation_id=simulation_id,
                name=name,
                acting_instructions=list(acting_instructions),
                descriptions=list(descriptions),
                wardrobe=list(wardrobe or []),
            )
            db.add(row)
            db.flush()
            hologram = self._hologram_to_model(row)

        logger.debug(f"[DB] Saved hologram {hologram.id}: {hologram.name}")
        return hologram

    def get_hologram(self, hologram_id: str) -> Optional[HologramModel]:
        db: DBSession = self.SessionLocal()
        try:
            row = db.query(Hologram).filter(Hologram.id == hologram_id).first()
            return self._hologram_to_model(row) if row else None
        finally:
            db.close()

    def get_holograms_by_simulation_id(self, simulation_id: str) -> List[HologramModel]:
        db: DBSession = self.SessionLocal()
        try:
            rows = (
                db.query(Hologram)
                .filter(Hologram.simulation_id == simulation_id)
                .order_by(Hologram.created_at)
                .all()
            )
            return [self._hologram_to_model(row) for row in rows]
        finally:
            db.close()

    # ==================== Run Operations ====================

    def create_run(
        self, simulation_id: str, hologram_id: str, title: Optional[str] = None
    ) -> RunRecord:
        """
        Create a run with no turns yet (current_turn = -1).

        Args:
            simulation_id: Story simulation being played
            hologram_id: Hologram the user plays as
            title: Optional run title

        Returns:
            The stored RunRecord
        """
        with self._transaction("create run") as db:
            row = Run(
                simulation_id=simulation_id,
                hologram_id=hologram_id,
                status=RunStatus.active.value,
                current_turn=-1,
                title=title,
            )
            db.add(row)
            db.flush()
            record = self._run_to_record(row)

        logger.debug(f"[DB] Created run {record.id} for simulation {simulation_id}")
        return record

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        db: DBSession = self.SessionLocal()
        try:
            row = db.query(Run).filter(Run.id == run_id).first()
            return self._run_to_record(row) if row else None
        finally:
            db.close()

    def get_runs_by_simulation_id(self, simulation_id: str) -> List[RunRecord]:
        """List runs of a simulation, most recent first."""
        db: DBSession = self.SessionLocal()
        try:
            rows = (
                db.query(Run)
                .filter(Run.simulation_id == simulation_id)
                .order_by(desc(Run.created_at))
                .all()
            )
            return [self._run_to_record(row) for row in rows]
        finally:
            db.close()

    def update_run_status(
        self,
        run_id: str,
        status: RunStatus,
        expected_status: Optional[RunStatus] = None,
    ) -> bool:
        """
        Update a run's status, optionally only if it is currently ``expected_status``.

        Returns:
            True if a row was updated
        """
        with self._transaction("update run status") as db:
            query = db.query(Run).filter(Run.id == run_id)
            if expected_status is not None:
                query = query.filter(Run.status == expected_status.value)
            updated = query.update(
                {Run.status: status.value, Run.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )

        if updated:
            logger.debug(f"[DB] Updated run {run_id} status to {status.value}")
        return bool(updated)

    def update_run_title(self, run_id: str, title: Optional[str]) -> bool:
        with self._transaction("update run title") as db:
            updated = (
                db.query(Run)
                .filter(Run.id == run_id)
                .update(
                    {Run.title: title, Run.updated_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
        return bool(updated)

    def delete_run(self, run_id: str) -> bool:
        """
        Delete a run together with its videos and turns, in one transaction.

        Returns:
            True if the run existed
        """
        with self._transaction("delete run") as db:
            videos = (
                db.query(Video)
                .filter(Video.run_id == run_id)
                .delete(synchronize_session=False)
            )
            turns = (
                db.query(Turn)
                .filter(Turn.run_id == run_id)
                .delete(synchronize_session=False)
            )
            runs = (
                db.query(Run).filter(Run.id == run_id).delete(synchronize_session=False)
            )

        if runs:
            logger.info(
                f"[DB] Deleted run {run_id} ({turns} turns, {videos} videos)",
                extra={"component": "DB", "run_id": run_id},
            )
        return bool(runs)

    # ==================== Turn Operations ====================

    def get_turns_by_run_id(
        self, run_id: str, limit: Optional[int] = None
    ) -> List[TurnRecord]:
        """
        List turns of a run in ascending turn_number order.

        Args:
            run_id: The run's unique identifier
            limit: When set, only the latest ``limit`` turns (still ascending)
        """
        db: DBSession = self.SessionLocal()
        try:
            query = db.query(Turn).filter(Turn.run_id == run_id)
            if limit is not None:
                rows = query.order_by(desc(Turn.turn_number)).limit(limit).all()
                rows.reverse()
            else:
                rows = query.order_by(Turn.turn_number).all()
            return [self._turn_to_record(row) for row in rows]
        finally:
            db.close()

    def create_turn_and_advance(
        self,
        run_id: str,
        user_prompt: str,
        ai_response: str,
        image_url: Optional[str],
        image_prompt: Optional[str],
        suggested_options: List[str],
    ) -> TurnRecord:
        """
        Insert the next turn of a run and advance ``current_turn`` atomically.

        The turn number is ``current_turn + 1``. The insert and the counter
        update commit together; the counter update is a compare-and-swap on
        the value read, so a concurrent writer makes this attempt roll back
        and re-read instead of reusing a number.

        Returns:
            The stored TurnRecord

        Raises:
            NotFound: The run does not exist
            PersistenceError: The store failed, or the swap kept conflicting
        """
        for attempt in range(1, self.turn_conflict_retries + 1):
            db: DBSession = self.SessionLocal()
            try:
                run = db.query(Run).filter(Run.id == run_id).first()
                if run is None:
                    raise NotFound(f"Run not found: {run_id}")

                expected = run.current_turn
                next_number = expected + 1

                swapped = (
                    db.query(Run)
                    .filter(Run.id == run_id, Run.current_turn == expected)
                    .update(
                        {Run.current_turn: next_number, Run.updated_at: datetime.utcnow()},
                        synchronize_session=False,
                    )
                )
                if swapped != 1:
                    db.rollback()
                    logger.warning(
                        f"[DB] Turn counter conflict on run {run_id} (attempt {attempt})",
                        extra={"component": "DB", "run_id": run_id, "attempt": attempt},
                    )
                    continue

                turn = Turn(
                    run_id=run_id,
                    turn_number=next_number,
                    user_prompt=user_prompt,
                    ai_response=ai_response,
                    image_url=image_url,
                    image_prompt=image_prompt,
                    suggested_options=list(suggested_options),
                )
                db.add(turn)
                db.commit()

                logger.debug(f"[DB] Stored turn {next_number} for run {run_id}")
                return self._turn_to_record(turn)
            except IntegrityError as e:
                db.rollback()
                logger.warning(
                    f"[DB] Turn number collision on run {run_id} (attempt {attempt}): {e}",
                    extra={"component": "DB", "run_id": run_id, "attempt": attempt},
                )
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[DB] Failed to store turn for run {run_id}: {e}")
                raise PersistenceError(f"Failed to store turn for run {run_id}") from e
            finally:
                db.close()

        raise PersistenceError(
            f"Could not assign a turn number for run {run_id} after "
            f"{self.turn_conflict_retries} attempts"
        )

    # ==================== Video Operations ====================

    def create_video(
        self, run_id: str, generation_prompt: str, operation_payload: str
    ) -> VideoRecord:
        """
        Create a video job row in the generating state.

        Raises:
            AlreadyExists: A generating or completed video already exists for the run
        """
        db: DBSession = self.SessionLocal()
        try:
            row = Video(
                run_id=run_id,
                status=VideoStatus.generating.value,
                generation_prompt=generation_prompt,
                operation_payload=operation_payload,
            )
            db.add(row)
            db.commit()
            record = self._video_to_record(row)
        except IntegrityError as e:
            db.rollback()
            raise AlreadyExists("Video already exists for this run") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[DB] Failed to create video for run {run_id}: {e}")
            raise PersistenceError(f"Failed to create video for run {run_id}") from e
        finally:
            db.close()

        logger.debug(f"[DB] Created video {record.id} for run {run_id}")
        return record

    def get_video(self, video_id: str) -> Optional[VideoRecord]:
        db: DBSession = self.SessionLocal()
        try:
            row = db.query(Video).filter(Video.id == video_id).first()
            return self._video_to_record(row) if row else None
        finally:
            db.close()

    def get_videos_by_run_id(self, run_id: str) -> List[VideoRecord]:
        """List videos of a run, most recent first."""
        db: DBSession = self.SessionLocal()
        try:
            rows = (
                db.query(Video)
                .filter(Video.run_id == run_id)
                .order_by(desc(Video.created_at))
                .all()
            )
            return [self._video_to_record(row) for row in rows]
        finally:
            db.close()

    def complete_video(self, video_id: str, video_url: str) -> bool:
        """
        Move a video from generating to completed.

        Returns:
            True if this call won the transition
        """
        with self._transaction("complete video") as db:
            updated = (
                db.query(Video)
                .filter(
                    Video.id == video_id,
                    Video.status == VideoStatus.generating.value,
                )
                .update(
                    {
                        Video.status: VideoStatus.completed.value,
                        Video.video_url: video_url,
                        Video.completed_at: datetime.utcnow(),
                        Video.operation_payload: None,
                    },
                    synchronize_session=False,
                )
            )
        return bool(updated)

    def fail_video(self, video_id: str) -> bool:
        """
        Move a video from generating to failed. The row is kept for audit.

        Returns:
            True if this call won the transition
        """
        with self._transaction("fail video") as db:
            updated = (
                db.query(Video)
                .filter(
                    Video.id == video_id,
                    Video.status == VideoStatus.generating.value,
                )
                .update(
                    {
                        Video.status: VideoStatus.failed.value,
                        Video.video_url: None,
                        Video.operation_payload: None,
                    },
                    synchronize_session=False,
                )
            )
        return bool(updated)
