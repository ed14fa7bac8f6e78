"""
Run lifecycle manager.

Owns run state transitions (active -> completed | abandoned) and the
per-run locks that serialize turn creation inside one process. Across
processes the database compare-and-swap on ``current_turn`` holds the
same guarantee.
"""

import asyncio
from typing import Dict, Optional

from storyreel.db.manager import DatabaseManager
from storyreel.errors import InvalidInput, InvalidState, NotFound
from storyreel.schemas import RunRecord, RunStatus
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 200


class RunLifecycleManager:
    """
    Creates runs and applies status and title changes.

    Attributes:
        db: Persistence store
    """

    def __init__(self, db: DatabaseManager):
        self.db = db
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, run_id: str) -> asyncio.Lock:
        """Return the in-process lock serializing turn creation for a run"""
        lock = self._locks.get(run_id)
        if lock is None:
            lock = self._locks.setdefault(run_id, asyncio.Lock())
        return lock

    def get_run(self, run_id: str) -> RunRecord:
        run = self.db.get_run(run_id)
        if not run:
            raise NotFound("Run not found")
        return run

    def get_run_for_simulation(self, simulation_id: str, run_id: str) -> RunRecord:
        """Fetch a run and check it belongs to ``simulation_id``"""
        run = self.get_run(run_id)
        if run.simulation_id != simulation_id:
            raise InvalidInput("Run does not belong to this simulation")
        return run

    def create_run(
        self, simulation_id: str, hologram_id: str, title: Optional[str] = None
    ) -> RunRecord:
        run = self.db.create_run(simulation_id, hologram_id, title=title)
        logger.info(
            f"[Run] Created run {run.id}",
            extra={
                "component": "Run",
                "run_id": run.id,
                "simulation_id": simulation_id,
                "hologram_id": hologram_id,
            },
        )
        return run

    def _transition(self, run_id: str, target: RunStatus) -> RunRecord:
        run = self.get_run(run_id)
        if run.status != RunStatus.active:
            raise InvalidState(
                f"Run is already {run.status.value}; only active runs can be {target.value}"
            )

        if not self.db.update_run_status(run_id, target, expected_status=RunStatus.active):
            # Lost a race with another transition
            current = self.get_run(run_id)
            raise InvalidState(
                f"Run is already {current.status.value}; only active runs can be {target.value}"
            )

        # Terminal runs take no more turns
        self._locks.pop(run_id, None)
        logger.info(
            f"[Run] Run {run_id} is now {target.value}",
            extra={"component": "Run", "run_id": run_id, "status": target.value},
        )
        return self.get_run(run_id)

    def complete_run(self, run_id: str) -> RunRecord:
        """active -> completed"""
        return self._transition(run_id, RunStatus.completed)

    def abandon_run(self, run_id: str) -> RunRecord:
        """active -> abandoned"""
        return self._transition(run_id, RunStatus.abandoned)

    def set_status(self, run_id: str, status: RunStatus) -> RunRecord:
        if status == RunStatus.completed:
            return self.complete_run(run_id)
        if status == RunStatus.abandoned:
            return self.abandon_run(run_id)
        run = self.get_run(run_id)
        if run.status != status:
            raise InvalidState(f"Run cannot return to {status.value} from {run.status.value}")
        return run

    @staticmethod
    def normalize_title(title: Optional[str]) -> Optional[str]:
        """Strip ``title`` (blank becomes None) and check its length"""
        if title is not None:
            title = title.strip() or None
        if title and len(title) > MAX_TITLE_LENGTH:
            raise InvalidInput(f"Title must be at most {MAX_TITLE_LENGTH} characters")
        return title

    def check_status_change(self, run: RunRecord, status: RunStatus) -> None:
        """Raise InvalidState if ``run`` cannot move to ``status``"""
        if status in (RunStatus.completed, RunStatus.abandoned):
            if run.status != RunStatus.active:
                raise InvalidState(
                    f"Run is already {run.status.value}; only active runs can be {status.value}"
                )
        elif run.status != status:
            raise InvalidState(f"Run cannot return to {status.value} from {run.status.value}")

    def update_title(self, run_id: str, title: Optional[str]) -> RunRecord:
        """Set or clear the run title; allowed in any state"""
        title = self.normalize_title(title)

        self.get_run(run_id)
        self.db.update_run_title(run_id, title)
        return self.get_run(run_id)

    def delete_run(self, run_id: str) -> None:
        if not self.db.delete_run(run_id):
            raise NotFound("Run not found")
        self._locks.pop(run_id, None)
        logger.info(
            f"[Run] Deleted run {run_id}",
            extra={"component": "Run", "run_id": run_id},
        )
