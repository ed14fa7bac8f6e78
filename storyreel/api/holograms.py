"""
Hologram API endpoints.

Hologram CRUD belongs to the surrounding application; this router only
lists a simulation's holograms and classifies management commands.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storyreel.api.dependencies import get_services
from storyreel.engine import is_hologram_command
from storyreel.errors import InvalidInput
from storyreel.services import Services

router = APIRouter()


class CommandRequest(BaseModel):
    """Free-text hologram management command"""

    text: str = Field(..., description='e.g. "update Captain Nova"')


@router.get("/{simulation_id}/holograms")
async def list_holograms(simulation_id: str, services: Services = Depends(get_services)):
    services.context.get_simulation(simulation_id)
    holograms = services.db.get_holograms_by_simulation_id(simulation_id)
    return {"holograms": holograms, "count": len(holograms)}


@router.post("/{simulation_id}/holograms/command")
async def classify_command(
    simulation_id: str,
    request: CommandRequest,
    services: Services = Depends(get_services),
):
    """Classify a command against the simulation's hologram names"""
    text = request.text.strip()
    if not text:
        raise InvalidInput("Command text is required")

    services.context.get_simulation(simulation_id)
    names = services.context.list_hologram_names(simulation_id)
    command = await services.classifier.classify(text, names)
    return {
        "command": command,
        "is_hologram_command": is_hologram_command(text),
        "known_holograms": names,
    }
