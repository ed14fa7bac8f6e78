"""
Unit tests for prompt builders.
"""

from storyreel.prompts import (
    FALLBACK_OPTIONS,
    OPTION_PAD,
    build_command_messages,
    build_image_prompt,
    build_narrative_messages,
    build_options_prompt,
    compile_highlight_prompt,
    opening_scene_description,
    parse_options,
    previous_image_prompts,
    select_highlight_turns,
)
from storyreel.schemas import Hologram, TurnRecord


def _turn(number, text, image_prompt=None):
    return TurnRecord(
        id=f"t{number}",
        run_id="run-1",
        turn_number=number,
        user_prompt=f"action {number}",
        ai_response=text,
        image_prompt=image_prompt,
    )


HOLOGRAM = Hologram(
    id="h1",
    simulation_id="s1",
    name="Captain Nova",
    acting_instructions=["Bold", "Curious"],
    descriptions=["Starship captain"],
)


class TestParseOptions:
    """Test option normalization"""

    def test_strips_numbering_and_bullets(self):
        text = "1. Open the hatch\n2) Call the crew\n- Scan the hull\n* Wait\n"
        assert parse_options(text) == [
            "Open the hatch",
            "Call the crew",
            "Scan the hull",
            "Wait",
        ]

    def test_truncates_to_four(self):
        options = parse_options("\n".join(f"Option {i}" for i in range(6)))
        assert options == ["Option 0", "Option 1", "Option 2", "Option 3"]

    def test_pads_short_answers(self):
        assert parse_options("Run\n\n") == ["Run", OPTION_PAD, OPTION_PAD, OPTION_PAD]

    def test_keeps_leading_numbers_that_are_content(self):
        assert parse_options("3 doors to open")[0] == "3 doors to open"

    def test_fallback_list_is_complete(self):
        assert len(FALLBACK_OPTIONS) == 4


class TestNarrativePrompt:
    """Test the narrator messages"""

    def test_only_last_five_turns(self, story):
        turns = [_turn(i, f"Response number {i}") for i in range(7)]

        messages = build_narrative_messages(story, HOLOGRAM, turns, "climb", 7)

        assert messages[0]["role"] == "system"
        assert story.title in messages[0]["content"]
        assert "Captain Nova" in messages[0]["content"]
        user = messages[1]["content"]
        assert 'Turn 1: User said "action 1"' not in user
        assert 'Turn 2: User said "action 2"' in user
        assert 'Turn 6: User said "action 6"' in user
        assert 'Current turn 7: The user says "climb"' in user

    def test_no_history_header_without_turns(self, story):
        messages = build_narrative_messages(story, HOLOGRAM, [], "look", 1)
        assert "Previous story progression" not in messages[1]["content"]

    def test_options_prompt_truncates_excerpt(self):
        prompt = build_options_prompt(HOLOGRAM, "x" * 500)
        assert "x" * 300 + "..." in prompt
        assert "x" * 301 not in prompt
        assert "Bold, Curious" in prompt


class TestImagePrompt:
    """Test continuity-aware image prompts"""

    def test_without_history(self):
        prompt = build_image_prompt("A cave", "Nova", [], "noir")
        assert prompt.startswith("Create a noir image")
        assert "Scene: A cave." in prompt
        assert "Character: Nova." in prompt
        assert "Maintain visual consistency" not in prompt

    def test_uses_last_two_previous_prompts(self):
        prompt = build_image_prompt("A cave", "Nova", ["first", "second", "third"])
        assert "Previous scene elements to consider: second, third." in prompt
        assert "first" not in prompt

    def test_previous_image_prompts(self):
        turns = [
            _turn(0, "a", "p0"),
            _turn(1, "b"),
            _turn(2, "c", "p2"),
            _turn(3, "d", "p3"),
            _turn(4, "e", "p4"),
        ]
        assert previous_image_prompts(turns) == ["p2", "p3", "p4"]

    def test_opening_scene(self, story):
        description = opening_scene_description(story)
        assert description.startswith(f'Opening scene of "{story.title}"')
        assert story.initial_scene in description


class TestHighlightPrompt:
    """Test highlight video prompt compilation"""

    def test_three_scenes(self):
        turns = [
            _turn(0, "a" * 80, "misty ruins"),
            _turn(1, "b" * 60),
            _turn(2, "c" * 120),
        ]

        prompt = compile_highlight_prompt("Eldoria", turns)

        assert prompt.startswith('Create a cinematic highlight video for the story "Eldoria"')
        assert "Scene 1: " + "a" * 80 + "... (Visual reference: misty ruins)" in prompt
        assert "Scene 2: " + "b" * 60 + "..." in prompt
        assert "Scene 3: " + "c" * 120 + "..." in prompt
        assert "Duration: 8 seconds" in prompt

    def test_short_turns_skipped_and_capped(self):
        """Test the 50-character floor and the eight-scene cap"""
        turns = [_turn(0, "too short")] + [_turn(i, "z" * 51) for i in range(1, 12)]

        selected = select_highlight_turns(turns)

        assert len(selected) == 8
        assert [t.turn_number for t in selected] == list(range(1, 9))

    def test_excerpt_limited_to_200_chars(self):
        prompt = compile_highlight_prompt("T", [_turn(0, "q" * 400)])
        assert "q" * 200 + "..." in prompt
        assert "q" * 201 not in prompt


class TestCommandMessages:
    def test_known_names_listed(self):
        messages = build_command_messages("update Nova", ["Nova", "Ash"])
        assert "Existing holograms: Nova, Ash" in messages[0]["content"]
        assert 'Parse this hologram management command: "update Nova"' in messages[1]["content"]
