"""Core team assignment logic for Team Builder."""

import logging
import math
import random
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from .balancer import BalanceReport, SkillBalancer
from .config import LeagueConfig
from .constraints import AvoidIndex, can_place_unit
from .exceptions import MoveRejectedError
from .grouping import (
    AVOID_VS_REQUEST,
    GroupingResult,
    get_player_group,
    process_mutual_requests,
)
from .models import Player, PlayerGroup, Team, average_skill
from .name_matcher import FuzzyNameMatcher
from .stats import GenerationStats, StatsCollector

logger = logging.getLogger("team_builder.assigner")

BALANCED = "balanced"
RANDOM = "random"
MANUAL = "manual"
MODES = (BALANCED, RANDOM, MANUAL)

# Ties between candidate teams closer than this are broken randomly
_TIE_TOLERANCE = 1e-9


@dataclass
class GenerationResult:
    """Teams, leftovers and statistics of one generation run."""

    teams: List[Team]
    unassigned: List[Player]
    stats: GenerationStats
    roster: List[Player]
    groups: List[PlayerGroup] = field(default_factory=list)
    mode: str = BALANCED
    grouping: Optional[GroupingResult] = None
    balance: Optional[BalanceReport] = None

    def assignments(self) -> Dict[str, Optional[str]]:
        """Map every player id to its team id (None when unassigned)."""
        mapping: Dict[str, Optional[str]] = {p.id: None for p in self.unassigned}
        for team in self.teams:
            for player in team.players:
                mapping[player.id] = team.id
        return mapping

    def find_team(self, team_id: str) -> Optional[Team]:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None


class TeamAssigner:
    """Place players into teams under capacity, quota and avoid constraints."""

    def __init__(
        self,
        config: LeagueConfig,
        matcher: Optional[FuzzyNameMatcher] = None,
        rng: Optional[random.Random] = None
    ):
        """Initialize the team assigner.

        Args:
            config: League configuration
            matcher: Name matcher shared by every stage (one is created if omitted)
            rng: Random source for shuffles and tie-breaks; pass a seeded
                ``random.Random`` for reproducible runs
        """
        self.config = config
        self.matcher = matcher or FuzzyNameMatcher()
        self.rng = rng or random.Random()

    def generate(
        self,
        players: List[Player],
        custom_groups: Iterable[PlayerGroup] = (),
        mode: str = BALANCED
    ) -> GenerationResult:
        """Run the full pipeline: grouping, placement, balancing and stats.

        Args:
            players: The roster
            custom_groups: Caller-defined groups, placed before anything else
            mode: "balanced", "random" or "manual"

        Returns:
            GenerationResult for the run

        Raises:
            ValueError: If ``mode`` is unknown
        """
        if mode not in MODES:
            raise ValueError(f"Unknown generation mode: {mode}")

        start_time = time.perf_counter()
        players = list(players)

        grouping = process_mutual_requests(players, self.matcher, self.config.match_threshold)
        groups = self._effective_groups(grouping, list(custom_groups))
        roster = self._stamp_groups(grouping.players, groups)
        by_id = {p.id: p for p in roster}
        groups = [replace(g, players=[by_id[pid] for pid in g.player_ids]) for g in groups]
        avoid_index = AvoidIndex.from_players(roster, self.matcher, self.config)

        teams = self.create_teams(self.target_team_count(len(roster)))
        balance_report = None

        if mode == MANUAL:
            unassigned = list(roster)
        else:
            units = self.build_constraint_units(roster, groups)
            if mode == BALANCED:
                assignment = self._assign_balanced(units, teams, avoid_index, average_skill(roster))
            else:
                assignment = self._assign_random(units, teams, avoid_index)

            teams, unassigned = self._materialize(teams, assignment, roster)

            if mode == BALANCED:
                locked = {pid for group in groups for pid in group.player_ids}
                balancer = SkillBalancer(self.config, avoid_index, locked)
                balance_report = balancer.balance(teams)

            teams = [team for team in teams if team.players]

        conflicts = len(grouping.conflicts_of_kind(AVOID_VS_REQUEST))
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        stats = StatsCollector(self.matcher).collect(roster, teams, unassigned, conflicts, elapsed_ms)

        logger.info(
            "Generated %d teams in %s mode: %d assigned, %d unassigned",
            len(teams), mode, stats.assigned_players, stats.unassigned_players
        )
        return GenerationResult(
            teams=teams,
            unassigned=unassigned,
            stats=stats,
            roster=self._stamp_teams(roster, teams),
            groups=groups,
            mode=mode,
            grouping=grouping,
            balance=balance_report,
        )

    def target_team_count(self, num_players: int) -> int:
        """Number of team slots: ``target_teams`` or enough to hold everyone."""
        if self.config.target_teams is not None:
            return max(self.config.target_teams, 0)
        if num_players == 0 or self.config.max_team_size < 1:
            return 0
        return math.ceil(num_players / self.config.max_team_size)

    @staticmethod
    def create_teams(count: int) -> List[Team]:
        return [Team(id=f"team-{i + 1}", name=f"Team {i + 1}") for i in range(count)]

    def build_constraint_units(self, players: List[Player], groups: List[PlayerGroup]) -> List[List[Player]]:
        """Split the roster into placement units.

        Groups come first in the order given, then every remaining player as a
        unit of one. A player never appears in two units.
        """
        by_id = {p.id: p for p in players}
        units = []
        covered = set()

        for group in groups:
            members = [by_id[pid] for pid in group.player_ids if pid in by_id and pid not in covered]
            if members:
                units.append(members)
                covered.update(p.id for p in members)

        for player in players:
            if player.id not in covered:
                units.append([player])

        return units

    def _effective_groups(self, grouping: GroupingResult, custom_groups: List[PlayerGroup]) -> List[PlayerGroup]:
        """Custom groups first, then formed groups minus players already covered."""
        known_ids = {p.id for p in grouping.players}
        groups = []
        covered = set()

        for group in custom_groups:
            member_ids = [pid for pid in group.player_ids if pid in known_ids and pid not in covered]
            if not member_ids:
                continue
            if len(member_ids) != group.size:
                logger.warning("Custom group %s refers to unknown or repeated players", group.label)
            groups.append(replace(group, player_ids=member_ids, players=()))
            covered.update(member_ids)

        for group in grouping.groups:
            member_ids = [pid for pid in group.player_ids if pid not in covered]
            if len(member_ids) < 2:
                continue
            groups.append(replace(group, player_ids=member_ids, players=()))
            covered.update(member_ids)

        return groups

    @staticmethod
    def _stamp_groups(players: List[Player], groups: List[PlayerGroup]) -> List[Player]:
        group_of = {pid: group.id for group in groups for pid in group.player_ids}
        return [replace(p, group_id=group_of.get(p.id), team_id=None) for p in players]

    @staticmethod
    def _stamp_teams(players: List[Player], teams: List[Team]) -> List[Player]:
        team_of = {p.id: team.id for team in teams for p in team.players}
        return [p.with_team(team_of.get(p.id)) for p in players]

    def _can_join_team(self, unit: List[Player], team: Team, avoid_index: AvoidIndex) -> bool:
        """Check if a whole unit can join a team."""
        return can_place_unit(unit, team, self.config, avoid_index)

    def _assign_balanced(
        self,
        units: List[List[Player]],
        teams: List[Team],
        avoid_index: AvoidIndex,
        roster_mean: float
    ) -> Dict[str, str]:
        """Place the most constrained units first, each into the emptiest team.

        Among equally empty teams, the one whose average would land closest to
        the roster mean wins. Units that fit nowhere stay unassigned as a whole.
        """
        units = sorted(units, key=lambda unit: -sum(len(p.avoid_requests) for p in unit))
        assignment: Dict[str, str] = {}

        for unit in units:
            team = self._find_best_team(unit, teams, avoid_index, roster_mean)
            if team is None:
                logger.debug("No team can take %s", ", ".join(p.name for p in unit))
                continue
            team.players.extend(unit)
            for player in unit:
                assignment[player.id] = team.id

        return assignment

    def _find_best_team(
        self,
        unit: List[Player],
        teams: List[Team],
        avoid_index: AvoidIndex,
        roster_mean: float
    ) -> Optional[Team]:
        candidates = [team for team in teams if self._can_join_team(unit, team, avoid_index)]
        if not candidates:
            return None

        def sort_key(team: Team):
            new_average = average_skill(team.players + unit)
            return team.size, abs(new_average - roster_mean)

        best_size, best_distance = min(sort_key(team) for team in candidates)
        tied = [
            team for team in candidates
            if team.size == best_size and abs(sort_key(team)[1] - best_distance) <= _TIE_TOLERANCE
        ]
        return tied[0] if len(tied) == 1 else self.rng.choice(tied)

    def _assign_random(
        self,
        units: List[List[Player]],
        teams: List[Team],
        avoid_index: AvoidIndex
    ) -> Dict[str, str]:
        """Place units in random order into the first feasible random team."""
        units = list(units)
        self.rng.shuffle(units)
        assignment: Dict[str, str] = {}

        for unit in units:
            candidates = list(teams)
            self.rng.shuffle(candidates)
            for team in candidates:
                if self._can_join_team(unit, team, avoid_index):
                    team.players.extend(unit)
                    for player in unit:
                        assignment[player.id] = team.id
                    break

        return assignment

    @staticmethod
    def _materialize(teams: List[Team], assignment: Dict[str, str], roster: List[Player]):
        """Build final teams from the assignment map, keeping roster order."""
        final_teams = {team.id: Team(id=team.id, name=team.name) for team in teams}
        unassigned = []
        for player in roster:
            team_id = assignment.get(player.id)
            if team_id is None:
                unassigned.append(player.with_team(None))
            else:
                final_teams[team_id].players.append(player.with_team(team_id))
        return [final_teams[team.id] for team in teams], unassigned

    def move_player(
        self,
        result: GenerationResult,
        player_id: str,
        target_team_id: Optional[str],
        force: bool = False
    ) -> GenerationResult:
        """Move one player to another team, or back to unassigned.

        Args:
            result: Result of a previous generation (left untouched)
            player_id: Player to move
            target_team_id: Destination team id, or None for unassigned
            force: Allow splitting a group and overfilling a team

        Returns:
            A new GenerationResult with refreshed statistics

        Raises:
            MoveRejectedError: If the player or team is unknown, the move
                introduces an avoid conflict, or (unless forced) it splits a
                group or overfills the destination team
        """
        assignments = result.assignments()
        if player_id not in assignments:
            raise MoveRejectedError("player not found", player_id)
        if target_team_id is not None and result.find_team(target_team_id) is None:
            raise MoveRejectedError(f"team {target_team_id} not found", player_id)
        if assignments[player_id] == target_team_id:
            return result

        if target_team_id is not None:
            destination = result.find_team(target_team_id)
            if destination.size + 1 > self.config.max_team_size and not force:
                raise MoveRejectedError(f"{destination.name} is full", player_id)

            avoid_index = AvoidIndex.from_players(result.roster, self.matcher, self.config)
            if avoid_index.conflicts_with_any(player_id, destination.player_ids):
                raise MoveRejectedError(f"avoid conflict in {destination.name}", player_id)

        group = get_player_group(result.groups, player_id)
        if group is not None and not force:
            groupmate_teams = {assignments[pid] for pid in group.player_ids if pid != player_id} - {None}
            if target_team_id is None:
                if assignments[player_id] in groupmate_teams:
                    raise MoveRejectedError(f"group {group.label} would be split", player_id)
            elif groupmate_teams - {target_team_id}:
                raise MoveRejectedError(f"group {group.label} would be split across teams", player_id)

        moving = None
        teams = []
        for team in result.teams:
            kept = []
            for player in team.players:
                if player.id == player_id:
                    moving = player
                else:
                    kept.append(player)
            teams.append(Team(id=team.id, name=team.name, players=kept))

        unassigned = []
        for player in result.unassigned:
            if player.id == player_id:
                moving = player
            else:
                unassigned.append(player)

        moving = moving.with_team(target_team_id)
        if target_team_id is None:
            unassigned.append(moving)
        else:
            next(team for team in teams if team.id == target_team_id).players.append(moving)

        logger.info("Moved %s to %s", moving.name, target_team_id or "unassigned")
        stats = StatsCollector(self.matcher).collect(
            result.roster, teams, unassigned,
            result.stats.conflicts_detected, result.stats.generation_time_ms
        )
        return replace(
            result,
            teams=teams,
            unassigned=unassigned,
            stats=stats,
            roster=self._stamp_teams(result.roster, teams),
        )


def generate_teams(
    players: List[Player],
    config: LeagueConfig,
    custom_groups: Iterable[PlayerGroup] = (),
    mode: str = BALANCED,
    rng: Optional[random.Random] = None
) -> GenerationResult:
    """Convenience wrapper around ``TeamAssigner(config).generate``."""
    return TeamAssigner(config, rng=rng).generate(players, custom_groups, mode)
