"""
Hologram command classifier.

Structured extraction first; when that fails for any reason, a keyword
heuristic that always produces a usable classification.
"""

import re
from typing import List, Optional, Sequence, Tuple

from storyreel.providers import GenerationBackend
from storyreel.schemas import CommandAction, CommandClassification
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

# Checked in order; the first verb family found wins
ACTION_KEYWORDS: List[Tuple[CommandAction, Tuple[str, ...]]] = [
    (CommandAction.create, ("create", "add", "new")),
    (CommandAction.update, ("update", "modify", "change")),
    (CommandAction.remove, ("remove", "delete")),
    (CommandAction.transfer, ("transfer", "move")),
]

HOLOGRAM_KEYWORDS = ("hologram", "character", "npc", "actor", "persona")

def _verb_pattern(word: str) -> str:
    """Match a verb and its inflections at a word start ("move", "moved", "moving")"""
    if word.endswith("e"):
        return word[:-1] + "(?:e|ing)"
    return word


_ACTION_PATTERNS = [
    (action, re.compile(r"\b(?:" + "|".join(_verb_pattern(w) for w in words) + ")"))
    for action, words in ACTION_KEYWORDS
]


def find_mentioned_name(text: str, known_names: Sequence[str]) -> Optional[str]:
    """
    Return the known name contained in ``text`` (case-insensitive).

    Longer names are tried first so "Captain Nova" wins over "Nova". The
    name is returned in its original casing.
    """
    lowered = text.lower()
    for name in sorted(known_names, key=len, reverse=True):
        if name and name.lower() in lowered:
            return name
    return None


def heuristic_classify(text: str, known_names: Sequence[str]) -> CommandClassification:
    """Keyword-based classification used when structured extraction fails"""
    lowered = text.lower()
    mentioned = find_mentioned_name(text, known_names)

    for action, pattern in _ACTION_PATTERNS:
        if pattern.search(lowered):
            if action == CommandAction.create:
                return CommandClassification(action=action)
            return CommandClassification(action=action, target_entity=mentioned)

    if mentioned:
        return CommandClassification(action=CommandAction.update, target_entity=mentioned)

    return CommandClassification(action=CommandAction.create)


def is_hologram_command(text: str) -> bool:
    """Whether free text looks like a hologram management command"""
    lowered = text.lower()
    return any(keyword in lowered for keyword in HOLOGRAM_KEYWORDS)


class CommandClassifier:
    """Classifies free-text hologram management commands"""

    def __init__(self, backend: GenerationBackend):
        self.backend = backend

    async def classify(
        self, text: str, known_names: Sequence[str]
    ) -> CommandClassification:
        """
        Classify ``text`` against the hologram names of a simulation.

        Never raises for extractor failures; the heuristic tier answers
        instead.
        """
        try:
            result = await self.backend.extract_command(text, known_names)
        except Exception as e:
            logger.warning(
                f"[Command] Structured extraction failed, using keyword fallback: {e}",
                extra={"component": "Command", "fallback": True, "error_type": type(e).__name__},
            )
            return heuristic_classify(text, known_names)

        if result.target_entity:
            # Prefer the stored casing of a known name
            canonical = find_mentioned_name(result.target_entity, known_names)
            if canonical and canonical.lower() == result.target_entity.lower():
                result = result.model_copy(update={"target_entity": canonical})

        logger.info(
            f"[Command] Parsed command: {result.action.value}",
            extra={
                "component": "Command",
                "action": result.action.value,
                "target_entity": result.target_entity,
            },
        )
        return result
