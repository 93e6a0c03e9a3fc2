import random

import pytest

from team_builder.config import LeagueConfig
from team_builder.models import Player


@pytest.fixture
def make_player():
    """Returns a factory for players with sensible defaults."""
    def _make(name, gender="M", skill=5.0, requests=(), avoid=(), handler=False, exec_skill=None, player_id=None):
        return Player(
            id=player_id or name.lower().replace(" ", "-"),
            name=name,
            gender=gender,
            skill_rating=skill,
            exec_skill_rating=exec_skill,
            teammate_requests=requests,
            avoid_requests=avoid,
            is_handler=handler,
        )
    return _make


@pytest.fixture
def rng():
    """Returns a seeded random source."""
    return random.Random(1234)


@pytest.fixture
def small_config():
    """Returns a config for teams of two with no gender quotas."""
    return LeagueConfig(max_team_size=2, target_teams=2)
