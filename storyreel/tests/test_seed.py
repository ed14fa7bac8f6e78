"""
Tests for demo story seeding.
"""

from storyreel.engine import StoryContextProvider
from storyreel.seed import DEMO_STORIES, seed_demo_stories, seed_if_empty


class TestSeed:
    """Test the demo stories and their holograms"""

    def test_seed_demo_stories(self, db):
        simulation_ids = seed_demo_stories(db)
        context = StoryContextProvider(db)

        assert len(simulation_ids) == len(DEMO_STORIES)
        titles = [context.get_story(sid).title for sid in simulation_ids]
        assert titles == ["The Lost City of Eldoria", "Neon Dreams"]

        names = context.list_hologram_names(simulation_ids[1])
        assert names == ["Alex Chen", "Detective Sarah Kim", "Ghost"]

        hologram = db.get_holograms_by_simulation_id(simulation_ids[0])[0]
        assert hologram.acting_instructions[0] == (
            "You are Dr. Elena Voss, Archaeologist and Scholar"
        )

    def test_seed_if_empty(self, db):
        assert len(seed_if_empty(db)) == 2
        assert seed_if_empty(db) == []
        assert db.count_simulations() == 2
