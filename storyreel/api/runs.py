"""
Run API endpoints.

Starting runs, reading them with their turns, status and title updates,
deletion, and turn submission. All logic lives in the engine; these
handlers only translate HTTP to engine calls.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storyreel.api.dependencies import get_services
from storyreel.errors import InvalidInput
from storyreel.schemas import RunStatus
from storyreel.services import Services
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class RunCreateRequest(BaseModel):
    """Request to start a run"""

    hologram_id: str = Field(..., description="Hologram the user plays as")
    title: Optional[str] = None


class RunUpdateRequest(BaseModel):
    """Status and/or title change; omitted fields are left alone"""

    status: Optional[RunStatus] = None
    title: Optional[str] = None


class TurnSubmitRequest(BaseModel):
    """The user's next action"""

    prompt: str


@router.get("/{simulation_id}/runs")
async def list_runs(simulation_id: str, services: Services = Depends(get_services)):
    """List runs of a simulation, most recent first"""
    services.context.get_simulation(simulation_id)
    runs = services.db.get_runs_by_simulation_id(simulation_id)
    return {"runs": runs, "count": len(runs)}


@router.post("/{simulation_id}/runs", status_code=201)
async def create_run(
    simulation_id: str,
    request: RunCreateRequest,
    services: Services = Depends(get_services),
):
    """
    Start a run and generate its opening turn.

    Raises:
        404: Simulation or hologram not found
        400: Not a story simulation, or hologram of another simulation
    """
    run, turn = await services.turns.start_run(
        simulation_id, request.hologram_id, title=request.title
    )
    return {"run": run, "turn": turn, "message": "Run created successfully"}


@router.get("/{simulation_id}/runs/{run_id}")
async def get_run(
    simulation_id: str, run_id: str, services: Services = Depends(get_services)
):
    """Get a run with its story summary, hologram and all turns"""
    run = services.runs.get_run_for_simulation(simulation_id, run_id)
    story = services.context.get_story(simulation_id)
    hologram = services.context.get_hologram(run.hologram_id)
    turns = services.db.get_turns_by_run_id(run_id)

    logger.debug(
        f"[API] Retrieved run {run_id} with {len(turns)} turns",
        extra={"component": "API", "run_id": run_id, "status": run.status.value},
    )
    return {
        "run": run,
        "simulation": {
            "id": simulation_id,
            "title": story.title,
            "description": story.description,
            "genre": story.genre,
            "setting": story.setting,
            "estimated_turns": story.estimated_turns,
        },
        "hologram": hologram,
        "turns": turns,
    }


@router.patch("/{simulation_id}/runs/{run_id}")
async def update_run(
    simulation_id: str,
    run_id: str,
    request: RunUpdateRequest,
    services: Services = Depends(get_services),
):
    """
    Update run status (completed/abandoned) and/or title.

    Raises:
        400: Empty request or invalid title
        409: Status change from a terminal state
    """
    fields = request.model_fields_set
    if not fields & {"status", "title"}:
        raise InvalidInput("Nothing to update: provide status and/or title")

    run = services.runs.get_run_for_simulation(simulation_id, run_id)
    change_status = "status" in fields and request.status is not None
    # Validate both fields before writing either
    if "title" in fields:
        services.runs.normalize_title(request.title)
    if change_status:
        services.runs.check_status_change(run, request.status)

    if change_status:
        run = services.runs.set_status(run_id, request.status)
    if "title" in fields:
        run = services.runs.update_title(run_id, request.title)

    return {"run": run, "message": "Run updated successfully"}


@router.delete("/{simulation_id}/runs/{run_id}")
async def delete_run(
    simulation_id: str, run_id: str, services: Services = Depends(get_services)
):
    """Delete a run together with its turns and videos"""
    services.runs.get_run_for_simulation(simulation_id, run_id)
    services.runs.delete_run(run_id)
    return {"message": "Run deleted successfully"}


@router.post("/{simulation_id}/runs/{run_id}/turns", status_code=201)
async def submit_turn(
    simulation_id: str,
    run_id: str,
    request: TurnSubmitRequest,
    services: Services = Depends(get_services),
):
    """
    Submit the user's next action.

    Raises:
        400: Empty prompt
        409: Run is not active
        502/503: Narrative generation failed
    """
    services.runs.get_run_for_simulation(simulation_id, run_id)
    turn = await services.turns.submit_turn(run_id, request.prompt)
    return {"turn": turn, "message": "Turn processed successfully"}
