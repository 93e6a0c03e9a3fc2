"""Greedy skill and role balancing by swapping players between teams."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Set, Tuple

from .config import LeagueConfig
from .constraints import AvoidIndex, quota_achievable
from .models import Player, Team

logger = logging.getLogger("team_builder.balancer")


@dataclass(frozen=True)
class Swap:
    weak_player_id: str
    strong_player_id: str
    weak_team_id: str
    strong_team_id: str
    improvement: float


@dataclass
class BalanceReport:
    passes: int = 0
    swaps: List[Swap] = field(default_factory=list)
    initial_spread: float = 0.0
    final_spread: float = 0.0


def skill_spread(teams: Iterable[Team]) -> float:
    averages = [team.average_skill for team in teams if team.players]
    if len(averages) < 2:
        return 0.0
    return max(averages) - min(averages)


def sample_players(players: List[Player], sample_size: int) -> List[Player]:
    """Pick up to ``sample_size`` players spread evenly over the skill range."""
    ranked = sorted(players, key=lambda p: (p.effective_skill, p.id))
    if len(ranked) <= sample_size:
        return ranked
    if sample_size == 1:
        return [ranked[len(ranked) // 2]]
    step = (len(ranked) - 1) / (sample_size - 1)
    picked = []
    for i in range(sample_size):
        player = ranked[round(i * step)]
        if player not in picked:
            picked.append(player)
    return picked


class SkillBalancer:
    """Bounded local search that narrows the gap between team skill averages.

    Each pass evaluates sampled cross-team swaps between adjacent teams (by
    average skill) and between the weakest and strongest team, then commits
    only the best legal swap. Players in ``locked_ids`` (members of affinity
    groups) are never moved. This is a heuristic bounded for interactive
    use, not an optimizer.
    """

    def __init__(
        self,
        config: LeagueConfig,
        avoid_index: AvoidIndex,
        locked_ids: Iterable[str] = ()
    ):
        self.config = config
        self.avoid_index = avoid_index
        self.locked_ids: Set[str] = set(locked_ids)

    def balance(self, teams: List[Team]) -> BalanceReport:
        """Swap players between ``teams`` in place.

        Args:
            teams: Working teams; their player lists are updated

        Returns:
            BalanceReport with the number of passes and the committed swaps
        """
        active = [team for team in teams if team.players]
        report = BalanceReport(initial_spread=skill_spread(active))
        if len(active) < 2:
            report.final_spread = report.initial_spread
            return report

        handler_target = self.config.handler_target
        if handler_target is None:
            handler_target = sum(team.handler_count for team in active) / len(active)

        for _ in range(self.config.balance_max_passes):
            ordered = sorted(active, key=lambda t: t.average_skill)
            if ordered[-1].average_skill - ordered[0].average_skill < self.config.balance_spread_threshold:
                break

            report.passes += 1
            best = None
            for weak_team, strong_team in self._team_pairs(ordered):
                candidate = self._best_swap(weak_team, strong_team, handler_target)
                if candidate is not None and (best is None or candidate[0].improvement > best[0].improvement):
                    best = candidate

            if best is None or best[0].improvement < self.config.balance_min_improvement:
                break

            swap, weak_team, strong_team, weak_player, strong_player = best
            self._apply(weak_team, strong_team, weak_player, strong_player)
            report.swaps.append(swap)
            logger.debug(
                "Swapped %s (%s) with %s (%s), improvement %.3f",
                weak_player.name, weak_team.name, strong_player.name, strong_team.name, swap.improvement
            )

        report.final_spread = skill_spread(active)
        return report

    @staticmethod
    def _team_pairs(ordered: List[Team]) -> List[Tuple[Team, Team]]:
        pairs = [(ordered[i], ordered[i + 1]) for i in range(len(ordered) - 1)]
        if len(ordered) > 2:
            pairs.append((ordered[0], ordered[-1]))
        return pairs

    def _best_swap(self, weak_team: Team, strong_team: Team, handler_target: float):
        weak_sample = sample_players(self._swappable(weak_team), self.config.balance_sample_size)
        strong_sample = sample_players(self._swappable(strong_team), self.config.balance_sample_size)

        best = None
        for weak_player in weak_sample:
            for strong_player in strong_sample:
                if weak_player.effective_skill >= strong_player.effective_skill:
                    continue
                if not self._is_legal(weak_team, strong_team, weak_player, strong_player):
                    continue

                improvement = self._improvement(weak_team, strong_team, weak_player, strong_player, handler_target)
                if best is None or improvement > best[0].improvement:
                    swap = Swap(weak_player.id, strong_player.id, weak_team.id, strong_team.id, improvement)
                    best = (swap, weak_team, strong_team, weak_player, strong_player)
        return best

    def _swappable(self, team: Team) -> List[Player]:
        return [p for p in team.players if p.id not in self.locked_ids]

    def _is_legal(self, weak_team: Team, strong_team: Team, weak_player: Player, strong_player: Player) -> bool:
        weak_rest = [pid for pid in weak_team.player_ids if pid != weak_player.id]
        strong_rest = [pid for pid in strong_team.player_ids if pid != strong_player.id]
        if self.avoid_index.conflicts_with_any(weak_player.id, strong_rest):
            return False
        if self.avoid_index.conflicts_with_any(strong_player.id, weak_rest):
            return False

        if weak_player.gender != strong_player.gender:
            for team, leaving, joining in ((weak_team, weak_player, strong_player),
                                           (strong_team, strong_player, weak_player)):
                counts = team.gender_breakdown
                counts[_gender_key(leaving)] -= 1
                counts[_gender_key(joining)] += 1
                if not quota_achievable(counts, team.size, self.config):
                    return False
        return True

    def _improvement(
        self,
        weak_team: Team,
        strong_team: Team,
        weak_player: Player,
        strong_player: Player,
        handler_target: float
    ) -> float:
        delta = strong_player.effective_skill - weak_player.effective_skill
        weak_avg, strong_avg = weak_team.average_skill, strong_team.average_skill
        gap_before = abs(weak_avg - strong_avg)
        gap_after = abs((weak_avg + delta / weak_team.size) - (strong_avg - delta / strong_team.size))

        handler_delta = int(strong_player.is_handler) - int(weak_player.is_handler)
        weak_handlers, strong_handlers = weak_team.handler_count, strong_team.handler_count
        role_before = abs(weak_handlers - handler_target) + abs(strong_handlers - handler_target)
        role_after = (abs(weak_handlers + handler_delta - handler_target)
                      + abs(strong_handlers - handler_delta - handler_target))

        return (gap_before - gap_after) + self.config.balance_role_weight * (role_before - role_after)

    @staticmethod
    def _apply(weak_team: Team, strong_team: Team, weak_player: Player, strong_player: Player) -> None:
        weak_team.players = [p for p in weak_team.players if p.id != weak_player.id]
        strong_team.players = [p for p in strong_team.players if p.id != strong_player.id]
        weak_team.players.append(strong_player.with_team(weak_team.id))
        strong_team.players.append(weak_player.with_team(strong_team.id))


def _gender_key(player: Player) -> str:
    return player.gender if player.gender in ("M", "F") else "Other"
