"""
Read-only access to story definitions and holograms.
"""

from typing import Any, Dict, List

from storyreel.db.manager import DatabaseManager
from storyreel.errors import NotFound
from storyreel.schemas import Hologram, StoryDefinition, parse_story_definition


class StoryContextProvider:
    """Fetches the narrative and character context a run is played against"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get_simulation(self, simulation_id: str) -> Dict[str, Any]:
        simulation = self.db.get_simulation(simulation_id)
        if not simulation:
            raise NotFound("Simulation not found")
        return simulation

    def get_story(self, simulation_id: str) -> StoryDefinition:
        """
        Load and validate the story definition of a simulation.

        Raises:
            NotFound: Unknown simulation
            InvalidInput: The simulation is not a story
            StoryDefinitionError: The stored definition is malformed
        """
        simulation = self.get_simulation(simulation_id)
        return parse_story_definition(simulation["simulation_object"])

    def get_hologram(self, hologram_id: str) -> Hologram:
        hologram = self.db.get_hologram(hologram_id)
        if not hologram:
            raise NotFound("Hologram not found")
        return hologram

    def list_hologram_names(self, simulation_id: str) -> List[str]:
        return [h.name for h in self.db.get_holograms_by_simulation_id(simulation_id)]
