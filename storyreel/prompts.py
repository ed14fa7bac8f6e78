"""
Prompt templates for the StoryReel engine

This file contains all prompts used by the system, plus the small builders
that fill them from run history. Modify these to test different behaviors.
"""

from typing import List, Optional, Sequence

from storyreel.schemas import Hologram, StoryDefinition, TurnRecord

# How much history each prompt sees
NARRATIVE_CONTEXT_TURNS = 5
IMAGE_CONTEXT_PROMPTS = 3
IMAGE_CONTINUITY_PROMPTS = 2
TURN_SUMMARY_CHARS = 200
OPTIONS_EXCERPT_CHARS = 300

# Highlight video selection
HIGHLIGHT_MAX_SCENES = 8
HIGHLIGHT_MIN_RESPONSE_CHARS = 50

OPTION_COUNT = 4
OPTION_PAD = "Take a different approach to the situation"
FALLBACK_OPTIONS = [
    "Investigate the area more carefully",
    "Try a different approach",
    "Look for clues or hidden elements",
    "Take decisive action",
]
OPENING_OPTIONS = [
    "Explore the area carefully",
    "Look for clues or hidden passages",
    "Call out to see if anyone is nearby",
    "Examine the mysterious glow",
]
OPENING_USER_PROMPT = "Start the story"
OPENING_CHARACTER_CONTEXT = "The main character entering the scene"


# Narrator - continues the story from the user's action
NARRATOR_SYSTEM = """You are the narrator of an interactive story called "{title}".
Genre: {genre}. Setting: {setting}. Tone: {tone}.
The user is playing as {character_name}, {character_descriptions}.
Character personality: {acting_instructions}.
Story context: {story_beginning}."""

NARRATOR_USER = """{history}Current turn {turn_number}: The user says "{user_prompt}".

Respond with a vivid, descriptive continuation of the story that:
1. Advances the plot based on the user's action
2. Maintains character consistency
3. Creates atmosphere and tension
4. Sets up interesting choices for the next turn
5. Keeps the story engaging and immersive
6. Is 2-3 paragraphs long
7. Ends with a clear situation that requires the user to make a decision"""

NARRATOR_HISTORY_HEADER = "Previous story progression:\n"
NARRATOR_HISTORY_LINE = (
    'Turn {turn_number}: User said "{user_prompt}". Result: {summary}...\n'
)


# Suggested options - four next actions for the character
OPTIONS_USER = """Based on this story continuation: "{excerpt}..."

Generate 4 different action options that {character_name} could take next. Each option should:
1. Be 1-2 sentences long
2. Be specific and actionable
3. Fit the character's personality: {acting_instructions}
4. Advance the story in different directions
5. Be interesting and engaging

Return only the 4 options, one per line, without numbering or bullets."""


# Illustration
IMAGE_PROMPT = (
    "Create a {style} image for an interactive story. "
    "Scene: {scene}. "
    "{character}"
    "{continuity}"
    "Style: {style}, high quality, detailed, atmospheric lighting. "
    "Avoid text or words in the image. Focus on the environment, characters, and mood."
)


# Highlight video
HIGHLIGHT_PROMPT_HEADER = (
    'Create a cinematic highlight video for the story "{title}". '
    "The video should show the key moments of the story: "
)
HIGHLIGHT_SCENE = "Scene {index}: {excerpt}..."
HIGHLIGHT_SCENE_VISUAL = " (Visual reference: {image_prompt})"
HIGHLIGHT_STYLE_SUFFIX = (
    " Style: cinematic, dramatic lighting, smooth transitions between scenes. "
    "Duration: 8 seconds. "
    "Focus on the most dramatic and visually interesting moments. "
    "Maintain visual consistency throughout the video."
)


# Hologram command parsing
COMMAND_PARSER_SYSTEM = """You are an expert command parser for hologram management.

Analyze the user's natural language input and determine:
1. The action to perform (create, update, remove, transfer)
2. Target hologram name (if applicable)
3. Target simulation (for transfer)

IMPORTANT RULES:
- If the prompt mentions an existing hologram name (from the list), it's likely an UPDATE
- If the prompt says "create", "add", "new" + a NEW name, it's CREATE
- If the prompt says "update", "modify", "change" + existing name, it's UPDATE
- If the prompt says "remove", "delete" + existing name, it's REMOVE
- If the prompt says "transfer", "move" + existing name, it's TRANSFER

Existing holograms: {known_names}"""

COMMAND_PARSER_USER = """Parse this hologram management command: "{text}"

Existing holograms: {known_names}

Determine the action and extract the target hologram name."""

COMMAND_SCHEMA = {
    "name": "hologram_command",
    "schema": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": ["create", "update", "remove", "transfer"],
                "description": "The action to perform on holograms",
            },
            "targetHologram": {
                "type": ["string", "null"],
                "description": "Name of the hologram to target (update/remove/transfer)",
            },
            "targetSimulation": {
                "type": ["string", "null"],
                "description": "Target simulation ID (transfer only)",
            },
        },
        "required": ["action", "targetHologram", "targetSimulation"],
        "additionalProperties": False,
    },
    "strict": True,
}


def _truncate(text: str, limit: int) -> str:
    return text[:limit]


def build_narrative_messages(
    story: StoryDefinition,
    hologram: Hologram,
    previous_turns: Sequence[TurnRecord],
    user_prompt: str,
    turn_number: int,
) -> List[dict]:
    """
    Build the system/user message pair for a narrative continuation.

    Args:
        story: Story definition of the run's simulation
        hologram: Character the user plays as
        previous_turns: Prior turns, ascending; only the last five are used
        user_prompt: The new user action
        turn_number: Number the new turn will receive

    Returns:
        List of ``{"role", "content"}`` dicts
    """
    system = NARRATOR_SYSTEM.format(
        title=story.title,
        genre=story.genre,
        setting=story.setting,
        tone=story.tone or "adventurous",
        character_name=hologram.name,
        character_descriptions=", ".join(hologram.descriptions),
        acting_instructions=", ".join(hologram.acting_instructions),
        story_beginning=story.story_arc.beginning,
    )

    history = ""
    recent = list(previous_turns)[-NARRATIVE_CONTEXT_TURNS:]
    if recent:
        history = NARRATOR_HISTORY_HEADER + "".join(
            NARRATOR_HISTORY_LINE.format(
                turn_number=turn.turn_number,
                user_prompt=turn.user_prompt,
                summary=_truncate(turn.ai_response, TURN_SUMMARY_CHARS),
            )
            for turn in recent
        )
        history += "\n"

    user = NARRATOR_USER.format(
        history=history, turn_number=turn_number, user_prompt=user_prompt
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def build_options_prompt(hologram: Hologram, narrative: str) -> str:
    return OPTIONS_USER.format(
        excerpt=_truncate(narrative, OPTIONS_EXCERPT_CHARS),
        character_name=hologram.name,
        acting_instructions=", ".join(hologram.acting_instructions),
    )


def parse_options(text: str) -> List[str]:
    """
    Turn a one-option-per-line completion into exactly four options.

    Numbering and bullets are stripped, blank lines dropped, extra lines
    cut, and a short answer is padded with a generic option.
    """
    options: List[str] = []
    for line in text.splitlines():
        option = line.strip().lstrip("-*•").strip()
        # "1." / "2)" style numbering
        head, sep, rest = option.partition(" ")
        if sep and head.rstrip(".)").isdigit() and head[-1] in ".)":
            option = rest.strip()
        if option:
            options.append(option)

    options = options[:OPTION_COUNT]
    while len(options) < OPTION_COUNT:
        options.append(OPTION_PAD)
    return options


def build_image_prompt(
    scene: str,
    character_context: str,
    previous_prompts: Sequence[str],
    style: str = "cinematic",
) -> str:
    """Build the illustration prompt, naming the last two prior prompts for continuity."""
    character = f"Character: {character_context}. " if character_context else ""
    continuity = ""
    if previous_prompts:
        recent = list(previous_prompts)[-IMAGE_CONTINUITY_PROMPTS:]
        continuity = (
            "Maintain visual consistency with previous scenes. "
            f"Previous scene elements to consider: {', '.join(recent)}. "
        )
    return IMAGE_PROMPT.format(
        style=style, scene=scene, character=character, continuity=continuity
    )


def opening_scene_description(story: StoryDefinition) -> str:
    return f'Opening scene of "{story.title}": {story.initial_scene}'


def select_highlight_turns(turns: Sequence[TurnRecord]) -> List[TurnRecord]:
    """Pick up to eight turns whose narrative is long enough to show."""
    eligible = [
        turn
        for turn in turns
        if turn.ai_response and len(turn.ai_response) > HIGHLIGHT_MIN_RESPONSE_CHARS
    ]
    return eligible[:HIGHLIGHT_MAX_SCENES]


def compile_highlight_prompt(title: str, turns: Sequence[TurnRecord]) -> str:
    """
    Compile the highlight video prompt for a finished run.

    Each selected turn contributes its first 200 characters of narrative and,
    when present, the exact prompt its illustration was generated from so the
    video keeps the look of the run.
    """
    scenes = []
    for index, turn in enumerate(select_highlight_turns(turns), start=1):
        scene = HIGHLIGHT_SCENE.format(
            index=index, excerpt=_truncate(turn.ai_response, TURN_SUMMARY_CHARS)
        )
        if turn.image_prompt:
            scene += HIGHLIGHT_SCENE_VISUAL.format(image_prompt=turn.image_prompt)
        scenes.append(scene)

    return (
        HIGHLIGHT_PROMPT_HEADER.format(title=title)
        + " ".join(scenes)
        + HIGHLIGHT_STYLE_SUFFIX
    )


def build_command_messages(text: str, known_names: Sequence[str]) -> List[dict]:
    names = ", ".join(known_names)
    return [
        {"role": "system", "content": COMMAND_PARSER_SYSTEM.format(known_names=names)},
        {"role": "user", "content": COMMAND_PARSER_USER.format(text=text, known_names=names)},
    ]


def previous_image_prompts(
    turns: Sequence[TurnRecord], limit: Optional[int] = IMAGE_CONTEXT_PROMPTS
) -> List[str]:
    """Stored image prompts of prior turns, oldest first, at most ``limit``."""
    prompts = [turn.image_prompt for turn in turns if turn.image_prompt]
    return prompts[-limit:] if limit else prompts
