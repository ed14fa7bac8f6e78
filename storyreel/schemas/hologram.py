"""
Hologram (character) schemas and the command classification result.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Hologram(BaseModel):
    """A character definition usable across runs. Read-only to the engine."""

    id: str
    simulation_id: str
    name: str
    acting_instructions: List[str] = Field(default_factory=list)
    descriptions: List[str] = Field(default_factory=list)
    wardrobe: List[str] = Field(default_factory=list)

    @property
    def character_context(self) -> str:
        """Identity line used in image prompts."""
        if not self.descriptions:
            return self.name
        return f"{self.name}: {', '.join(self.descriptions)}"


class CommandAction(str, Enum):
    """Hologram management actions"""

    create = "create"
    update = "update"
    remove = "remove"
    transfer = "transfer"


class CommandClassification(BaseModel):
    """Result of classifying a free-text hologram management command"""

    action: CommandAction = Field(..., description="The action to perform")
    target_entity: Optional[str] = Field(
        default=None,
        description="Name of the hologram to target (update/remove/transfer)",
    )
    target_simulation: Optional[str] = Field(
        default=None, description="Target simulation ID (transfer only)"
    )
