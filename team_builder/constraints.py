"""Hard placement constraints: avoid pairs, capacity and gender quotas."""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .config import LeagueConfig
from .models import Player, Team
from .name_matcher import FuzzyNameMatcher

logger = logging.getLogger("team_builder.constraints")

# Avoid requests are hard constraints, so they are only applied when the name
# resolves with high confidence.
AVOID_MATCH_THRESHOLD = 0.8


class AvoidIndex:
    """Symmetric set of player-id pairs that may never share a team."""

    def __init__(self, pairs: Iterable[Tuple[str, str]] = ()):
        self._pairs: Set[FrozenSet[str]] = set()
        for first, second in pairs:
            self.add(first, second)

    @classmethod
    def from_players(
        cls,
        players: List[Player],
        matcher: FuzzyNameMatcher,
        config: Optional[LeagueConfig] = None,
        threshold: float = AVOID_MATCH_THRESHOLD
    ) -> "AvoidIndex":
        """Resolve every avoid request (and league exclusions) to id pairs.

        Args:
            players: The full roster
            matcher: Name matcher used to resolve free-text names
            config: League config whose exclusion groups add extra pairs
            threshold: Minimum match score for an avoid name to count

        Returns:
            AvoidIndex covering the roster
        """
        index = cls()
        names = [p.name for p in players]

        for position, player in enumerate(players):
            for avoid_name in player.avoid_requests:
                resolution = matcher.resolve(avoid_name, names, threshold, exclude=position)
                if resolution.is_usable:
                    index.add(player.id, players[resolution.index].id)
                else:
                    logger.debug("Avoid request %r from %s ignored: %s",
                                 avoid_name, player.name, resolution.message)

        if config is not None:
            for first_name, second_name in config.get_excluded_pairs():
                first = _resolve_id(first_name, names, players, matcher, threshold)
                second = _resolve_id(second_name, names, players, matcher, threshold)
                if first is not None and second is not None:
                    index.add(first, second)

        return index

    def add(self, first: str, second: str) -> None:
        if first != second:
            self._pairs.add(frozenset((first, second)))

    def conflicts(self, first: str, second: str) -> bool:
        return frozenset((first, second)) in self._pairs

    def conflicts_with_any(self, player_id: str, others: Iterable[str]) -> bool:
        return any(self.conflicts(player_id, other) for other in others)

    def group_conflicts_with(self, player_ids: List[str], others: Iterable[str]) -> bool:
        """True if any id in ``player_ids`` conflicts with any id in ``others``."""
        others = list(others)
        return any(self.conflicts_with_any(pid, others) for pid in player_ids)

    def has_internal_conflict(self, player_ids: List[str]) -> bool:
        for i, first in enumerate(player_ids):
            for second in player_ids[i + 1:]:
                if self.conflicts(first, second):
                    return True
        return False


def quota_achievable(gender_counts: Dict[str, int], team_size: int, config: LeagueConfig) -> bool:
    """Check that a team of the given make-up can still reach its minimums.

    Every slot still open could go to either gender, so the quota is
    achievable while ``count + remaining_slots >= minimum`` for both F and M.
    """
    remaining_slots = config.max_team_size - team_size
    if gender_counts.get("F", 0) + remaining_slots < config.min_females:
        return False
    if gender_counts.get("M", 0) + remaining_slots < config.min_males:
        return False
    return True


def can_place_unit(unit: List[Player], team: Team, config: LeagueConfig, avoid_index: AvoidIndex) -> bool:
    """Check capacity, gender quota and avoid constraints for a whole unit."""
    new_size = team.size + len(unit)
    if new_size > config.max_team_size:
        return False

    counts = team.gender_breakdown
    for player in unit:
        counts[player.gender if player.gender in counts else "Other"] += 1
    if not quota_achievable(counts, new_size, config):
        return False

    unit_ids = [p.id for p in unit]
    if avoid_index.has_internal_conflict(unit_ids):
        return False
    return not avoid_index.group_conflicts_with(unit_ids, team.player_ids)


def _resolve_id(
    name: str,
    names: List[str],
    players: List[Player],
    matcher: FuzzyNameMatcher,
    threshold: float
) -> Optional[str]:
    resolution = matcher.resolve(name, names, threshold)
    if not resolution.is_usable:
        logger.warning("League exclusion name %r does not match the roster", name)
        return None
    return players[resolution.index].id
