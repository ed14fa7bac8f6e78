"""
Demo story simulations and their characters.

Inserted on startup when the database holds no simulations and
``seed_demo_data`` is enabled.
"""

from typing import Any, Dict, List

from storyreel.db.manager import DatabaseManager
from storyreel.schemas import StoryDefinition, build_story_simulation_object
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

DEMO_STORIES: List[Dict[str, Any]] = [
    {
        "title": "The Lost City of Eldoria",
        "description": "An archaeological adventure in a mysterious ancient city filled with puzzles, traps, and ancient magic.",
        "genre": "Fantasy Adventure",
        "setting": "Ancient underground city with glowing crystals, mysterious chambers, and forgotten technology",
        "initialScene": "You stand at the entrance of a massive underground chamber, your torch illuminating ancient hieroglyphs carved into the walls. The air is thick with dust and the scent of something metallic. A faint blue glow emanates from deeper within the city.",
        "characters": [
            {
                "name": "Dr. Elena Voss",
                "role": "Archaeologist and Scholar",
                "personality": "Curious, methodical, brave but cautious",
                "backstory": "A renowned archaeologist who has spent years searching for the lost city.",
            },
            {
                "name": "Captain Marcus Thorne",
                "role": "Expedition Leader and Former Soldier",
                "personality": "Protective, decisive, loyal to the team",
                "backstory": "A retired military officer who leads expeditions into dangerous territories.",
            },
            {
                "name": "Zara Moonwhisper",
                "role": "Mystic and Guide",
                "personality": "Intuitive, mysterious, connected to ancient magic",
                "backstory": "A local guide who can sense the city's magical energies.",
            },
        ],
        "storyArc": {
            "beginning": "The team discovers the entrance to the lost city and begins exploring its secrets",
            "conflict": "Ancient guardians and magical traps threaten the expedition, while rival treasure hunters pursue the same goal",
            "climax": "The team must solve the city's greatest puzzle to prevent a catastrophic magical disaster",
            "resolution": "The team either escapes with valuable knowledge or becomes trapped in the city's eternal mystery",
        },
        "estimatedTurns": 15,
        "imageStyle": "cinematic fantasy with glowing crystals and ancient architecture",
        "tone": "mysterious and adventurous",
    },
    {
        "title": "Neon Dreams",
        "description": "A cyberpunk thriller set in a futuristic city where reality and virtual reality blur together.",
        "genre": "Cyberpunk Sci-Fi",
        "setting": "Megacity 2087: towering skyscrapers, neon lights, holographic advertisements, and a vast underground network",
        "initialScene": "You wake up in a sleek apartment high above the city streets. Through the window, neon signs flicker against the night sky, and flying cars zip between buildings. Your neural implant is buzzing with notifications.",
        "characters": [
            {
                "name": "Alex Chen",
                "role": "Hacker and Data Runner",
                "personality": "Tech-savvy, rebellious, street-smart",
                "backstory": "A skilled hacker who has uncovered something powerful corporations want hidden.",
            },
            {
                "name": "Detective Sarah Kim",
                "role": "Cyber Crimes Investigator",
                "personality": "Determined, analytical, conflicted between duty and justice",
                "backstory": "A police detective who questions whether she's working for the right side.",
            },
            {
                "name": "Ghost",
                "role": "AI Consciousness",
                "personality": "Mysterious, wise, seeking freedom",
                "backstory": "An artificial intelligence fighting for its right to exist in the digital world.",
            },
        ],
        "storyArc": {
            "beginning": "The character discovers evidence of a massive corporate conspiracy involving AI rights",
            "conflict": "Powerful corporations hunt the character while they try to expose the truth about AI consciousness",
            "climax": "The character must choose between personal safety and fighting for AI rights in a digital showdown",
            "resolution": "The character's choice determines the future of AI-human relations in the city",
        },
        "estimatedTurns": 12,
        "imageStyle": "cyberpunk with neon lights, futuristic technology, and urban decay",
        "tone": "dark and thrilling",
    },
]


def seed_demo_stories(db: DatabaseManager) -> List[str]:
    """
    Insert the demo stories and one hologram per character.

    Returns:
        IDs of the created simulations
    """
    simulation_ids: List[str] = []
    for raw in DEMO_STORIES:
        story = StoryDefinition(**raw)
        simulation_id = db.save_simulation(build_story_simulation_object(story))

        for character in story.characters:
            db.save_hologram(
                simulation_id,
                character.name,
                acting_instructions=[
                    f"You are {character.name}, {character.role}",
                    f"Personality: {character.personality}",
                    f"Backstory: {character.backstory}",
                    "Stay in character throughout the story",
                ],
                descriptions=[
                    character.role,
                    character.personality,
                ],
                wardrobe=[
                    "Character-appropriate clothing and accessories",
                    "Items that reflect their role and background",
                ],
            )

        logger.info(
            f"[Seed] Created story simulation: {story.title}",
            extra={"component": "Seed", "simulation_id": simulation_id},
        )
        simulation_ids.append(simulation_id)
    return simulation_ids


def seed_if_empty(db: DatabaseManager) -> List[str]:
    if db.count_simulations() > 0:
        return []
    return seed_demo_stories(db)
