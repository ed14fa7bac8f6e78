"""
Story definition schema.

A story definition is stored inside a simulation object as
``{"type": "story", "story": {...}}``. It is validated every time it is
read; a definition that fails validation raises StoryDefinitionError
instead of degrading to an empty object.
"""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from storyreel.errors import InvalidInput, StoryDefinitionError

STORY_SCHEMA_VERSION = 1


class StoryCharacter(BaseModel):
    """A character the user can play as"""

    name: str
    role: str = Field(default="", description="The character's role in the story")
    personality: str = Field(default="", description="Key personality traits")
    backstory: str = Field(default="", description="Background and motivation")


class StoryArc(BaseModel):
    """The overall story structure"""

    beginning: str = Field(..., description="How the story begins")
    conflict: str = Field(default="", description="The main conflict or challenge")
    climax: str = Field(default="", description="The peak dramatic moment")
    resolution: str = Field(default="", description="How the story concludes")


class StoryDefinition(BaseModel):
    """Typed, versioned story definition"""

    schema_version: int = Field(default=STORY_SCHEMA_VERSION, ge=1)
    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    genre: str = Field(..., description="fantasy, sci-fi, mystery, ...")
    setting: str = Field(..., description="The world where the story takes place")
    initial_scene: str = Field(..., alias="initialScene", min_length=1)
    characters: List[StoryCharacter] = Field(default_factory=list)
    story_arc: StoryArc = Field(..., alias="storyArc")
    estimated_turns: int = Field(default=10, alias="estimatedTurns", ge=1)
    image_style: str = Field(default="cinematic", alias="imageStyle")
    tone: str = Field(default="adventurous")

    class Config:
        populate_by_name = True


def parse_story_definition(
    simulation_object: Union[str, Dict[str, Any], None]
) -> StoryDefinition:
    """
    Validate a stored simulation object and return its story definition.

    Args:
        simulation_object: The raw JSON string or decoded dict from storage

    Returns:
        The validated StoryDefinition

    Raises:
        InvalidInput: The simulation is not a story simulation
        StoryDefinitionError: The stored data is malformed
    """
    if simulation_object is None:
        raise StoryDefinitionError("Simulation has no story data")

    if isinstance(simulation_object, str):
        try:
            simulation_object = json.loads(simulation_object)
        except json.JSONDecodeError as e:
            raise StoryDefinitionError("Invalid simulation data", original_error=e)

    if not isinstance(simulation_object, dict):
        raise StoryDefinitionError("Invalid simulation data")

    if simulation_object.get("type") != "story":
        raise InvalidInput("This simulation is not a story")

    story = simulation_object.get("story")
    if not isinstance(story, dict):
        raise StoryDefinitionError("Story data not found")

    version = story.get("schema_version", STORY_SCHEMA_VERSION)
    if version != STORY_SCHEMA_VERSION:
        raise StoryDefinitionError(f"Unsupported story schema version: {version}")

    # Optional fields stored as null fall back to their defaults
    cleaned = {k: v for k, v in story.items() if v is not None}
    try:
        return StoryDefinition(**cleaned)
    except ValidationError as e:
        raise StoryDefinitionError(f"Invalid story definition: {e}", original_error=e)


def build_story_simulation_object(
    story: StoryDefinition, name: Optional[str] = None
) -> Dict[str, Any]:
    """Wrap a story definition in the stored simulation object shape."""
    return {
        "type": "story",
        "name": name or story.title,
        "description": story.description,
        "story": story.model_dump(by_alias=True),
    }
