"""Post-generation statistics for Team Builder."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import GENDERS, MUST_HAVE, Player, Team, request_priority
from .name_matcher import FuzzyNameMatcher

STATS_MATCH_THRESHOLD = 0.8


@dataclass(frozen=True)
class GenerationStats:
    total_players: int = 0
    assigned_players: int = 0
    unassigned_players: int = 0
    must_have_honored: int = 0
    must_have_broken: int = 0
    nice_to_have_honored: int = 0
    nice_to_have_broken: int = 0
    conflicts_detected: int = 0
    avoid_violations: int = 0
    generation_time_ms: float = 0.0

    @property
    def requests_honored(self) -> int:
        return self.must_have_honored + self.nice_to_have_honored

    @property
    def requests_broken(self) -> int:
        return self.must_have_broken + self.nice_to_have_broken

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['requests_honored'] = self.requests_honored
        data['requests_broken'] = self.requests_broken
        return data


class StatsCollector:
    """Measure how well a final team composition honors the roster's requests.

    Collection only reads its inputs, so running it twice over the same
    state gives identical counts.
    """

    def __init__(self, matcher: Optional[FuzzyNameMatcher] = None, threshold: float = STATS_MATCH_THRESHOLD):
        self.matcher = matcher or FuzzyNameMatcher()
        self.threshold = threshold

    def collect(
        self,
        players: List[Player],
        teams: List[Team],
        unassigned: List[Player],
        conflicts_detected: int = 0,
        generation_time_ms: float = 0.0
    ) -> GenerationStats:
        """Compute statistics for a final composition.

        Args:
            players: The original roster, with its free-text requests
            teams: Final teams
            unassigned: Players left without a team
            conflicts_detected: Number of avoid-vs-request conflicts in the input
            generation_time_ms: Wall-clock duration of the generation

        Returns:
            GenerationStats for the composition
        """
        team_of = {p.id: team.id for team in teams for p in team.players}
        names = [p.name for p in players]
        counts = {
            'must_have_honored': 0,
            'must_have_broken': 0,
            'nice_to_have_honored': 0,
            'nice_to_have_broken': 0,
        }

        for position, player in enumerate(players):
            seen = set()
            for request_index, raw in enumerate(player.teammate_requests):
                resolution = self.matcher.resolve(raw, names, self.threshold, exclude=position)
                if not resolution.is_usable:
                    continue
                target_id = players[resolution.index].id
                if target_id in seen:
                    continue
                seen.add(target_id)
                own_team = team_of.get(player.id)
                honored = own_team is not None and own_team == team_of.get(target_id)
                tier = 'must_have' if request_priority(request_index) == MUST_HAVE else 'nice_to_have'
                counts[f"{tier}_{'honored' if honored else 'broken'}"] += 1

        return GenerationStats(
            total_players=len(players),
            assigned_players=len(team_of),
            unassigned_players=len(unassigned),
            conflicts_detected=conflicts_detected,
            avoid_violations=self.count_avoid_violations(teams),
            generation_time_ms=generation_time_ms,
            **counts,
        )

    def count_avoid_violations(self, teams: List[Team]) -> int:
        """Count avoid requests that name a teammate in the final teams."""
        violations = 0
        for team in teams:
            for player in team.players:
                teammates = [p.name for p in team.players if p.id != player.id]
                for avoid_name in player.avoid_requests:
                    if self.matcher.match(avoid_name, teammates, self.threshold):
                        violations += 1
        return violations


def get_team_summary(teams: List[Team]) -> Dict[str, Any]:
    """Get a summary of the team composition.

    Args:
        teams: Teams to summarize

    Returns:
        Dictionary with per-team sizes, averages, gender and handler counts
    """
    if not teams:
        return {
            'total_players': 0,
            'teams': {},
            'team_sizes': {},
            'average_team_size': 0.0,
            'skill_spread': 0.0,
        }

    team_sizes = {team.name: team.size for team in teams}
    averages = [team.average_skill for team in teams if team.players]

    return {
        'total_players': sum(team_sizes.values()),
        'teams': {team.name: [p.name for p in team.players] for team in teams},
        'team_sizes': team_sizes,
        'average_team_size': round(sum(team_sizes.values()) / len(teams), 2),
        'skill_spread': round(max(averages) - min(averages), 2) if averages else 0.0,
    }


def teams_to_dataframe(teams: List[Team]) -> pd.DataFrame:
    """One row per team with its derived statistics."""
    rows = []
    for team in teams:
        row = {
            'team': team.name,
            'players': team.size,
            'average_skill': round(team.average_skill, 2),
            'handlers': team.handler_count,
        }
        row.update(team.gender_breakdown)
        rows.append(row)
    columns = ['team', 'players', 'average_skill', 'handlers', *GENDERS]
    return pd.DataFrame(rows, columns=columns)
