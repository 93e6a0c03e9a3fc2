"""Team Builder - split a roster into balanced teams that honor teammate requests."""

__version__ = "0.2.0"

from .assigner import GenerationResult, TeamAssigner, generate_teams
from .config import LeagueConfig
from .grouping import process_mutual_requests, validate_groups_for_generation
from .models import Player, PlayerGroup, Team
from .name_matcher import FuzzyNameMatcher
from .stats import GenerationStats, StatsCollector

__all__ = [
    "FuzzyNameMatcher",
    "GenerationResult",
    "GenerationStats",
    "LeagueConfig",
    "Player",
    "PlayerGroup",
    "StatsCollector",
    "Team",
    "TeamAssigner",
    "generate_teams",
    "process_mutual_requests",
    "validate_groups_for_generation",
]
