"""Affinity group formation from free-text teammate requests."""

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from .models import Player, PlayerGroup, UnfulfilledRequest, request_priority
from .name_matcher import DEFAULT_MATCH_THRESHOLD, FuzzyNameMatcher, Resolution

logger = logging.getLogger("team_builder.grouping")

MAX_GROUP_SIZE = 4

GROUP_COLORS = [
    '#3B82F6',  # blue
    '#EF4444',  # red
    '#10B981',  # green
    '#F59E0B',  # yellow
    '#8B5CF6',  # purple
    '#F97316',  # orange
    '#06B6D4',  # cyan
    '#84CC16',  # lime
    '#EC4899',  # pink
    '#6B7280',  # gray
    '#14B8A6',  # teal
    '#F43F5E',  # rose
]

AVOID_VS_REQUEST = "avoid-vs-request"
ONE_WAY_REQUEST = "one-way-request"

CONFLICT = "conflict"
GROUP_FULL = "group-full"
NON_RECIPROCAL = "non-reciprocal"
GROUP_TOO_LARGE = "group-too-large"


def group_label(index: int) -> str:
    """Sequential label for the group at ``index``: A..Z, then AA, AB, ..."""
    label = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        label = chr(65 + remainder) + label
    return label


def group_color(index: int) -> str:
    return GROUP_COLORS[index % len(GROUP_COLORS)]


@dataclass(frozen=True)
class ResolvedRequest:
    """One teammate or avoid request after name resolution."""

    requester_id: str
    raw: str
    position: int
    resolution: Resolution
    target_id: Optional[str] = None

    @property
    def priority(self) -> str:
        return request_priority(self.position)


@dataclass(frozen=True)
class RequestConflict:
    kind: str
    requester_id: str
    target_id: str


@dataclass(frozen=True)
class NearMiss:
    """Players that would have formed one oversized group."""

    player_ids: Tuple[str, ...]
    excluded_ids: Tuple[str, ...]
    reason: str = GROUP_TOO_LARGE


@dataclass
class RequestResolutions:
    """Resolved teammate and avoid requests for a whole roster."""

    teammates: Dict[str, List[ResolvedRequest]] = field(default_factory=dict)
    avoids: Dict[str, List[ResolvedRequest]] = field(default_factory=dict)

    def requested_ids(self, player_id: str) -> List[str]:
        return [r.target_id for r in self.teammates.get(player_id, []) if r.target_id is not None]

    def avoided_ids(self, player_id: str) -> List[str]:
        return [r.target_id for r in self.avoids.get(player_id, []) if r.target_id is not None]

    def warnings(self) -> List[str]:
        messages = []
        for kind, table in (("Teammate", self.teammates), ("Avoid", self.avoids)):
            for requests in table.values():
                for request in requests:
                    if request.resolution.status != "accepted":
                        messages.append(f"{kind} request: {request.resolution.message}")
        return messages


@dataclass
class GroupValidation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class GroupingResult:
    """Everything group formation produced for one roster."""

    players: List[Player]
    groups: List[PlayerGroup]
    near_misses: List[NearMiss]
    conflicts: List[RequestConflict]
    resolutions: RequestResolutions

    @property
    def warnings(self) -> List[str]:
        return self.resolutions.warnings()

    def conflicts_of_kind(self, kind: str) -> List[RequestConflict]:
        return [c for c in self.conflicts if c.kind == kind]


class MutualGraph:
    """Undirected graph of reciprocated teammate requests.

    Nodes live in an arena (``node_ids``) and edges are stored as index-based
    adjacency sets, so traversal order follows roster order.
    """

    def __init__(self, node_ids: List[str]):
        self.node_ids = list(node_ids)
        self._index = {node_id: i for i, node_id in enumerate(self.node_ids)}
        self.adjacency: List[Set[int]] = [set() for _ in self.node_ids]

    @classmethod
    def from_requests(cls, players: List[Player], resolutions: RequestResolutions) -> "MutualGraph":
        """Add an edge A<->B only when A requests B and B requests A."""
        graph = cls([p.id for p in players])
        requested = {p.id: set(resolutions.requested_ids(p.id)) for p in players}
        for player in players:
            for target_id in requested[player.id]:
                if player.id in requested.get(target_id, set()):
                    graph.add_edge(player.id, target_id)
        return graph

    def add_edge(self, first: str, second: str) -> None:
        i, j = self._index[first], self._index[second]
        if i != j:
            self.adjacency[i].add(j)
            self.adjacency[j].add(i)

    def has_edge(self, first: str, second: str) -> bool:
        if first not in self._index or second not in self._index:
            return False
        return self._index[second] in self.adjacency[self._index[first]]

    def components(self, cap: int = MAX_GROUP_SIZE) -> List[Tuple[List[str], List[str]]]:
        """Connected components truncated at ``cap`` members.

        Breadth-first traversal starts from each unvisited node in roster
        order. Once a component holds ``cap`` members, further reachable
        neighbors are not added; they are returned as the component's
        overflow and stay unvisited, so they may still seed a later
        component with other unvisited partners.

        Returns:
            List of (member ids, overflow ids); isolated nodes are skipped
        """
        visited: Set[int] = set()
        result = []

        for start in range(len(self.node_ids)):
            if start in visited or not self.adjacency[start]:
                continue

            members = [start]
            in_component = {start}
            overflow: List[int] = []
            queue = deque([start])

            while queue:
                current = queue.popleft()
                for neighbor in sorted(self.adjacency[current]):
                    if neighbor in in_component or neighbor in visited:
                        continue
                    if len(members) < cap:
                        members.append(neighbor)
                        in_component.add(neighbor)
                        queue.append(neighbor)
                    elif neighbor not in overflow:
                        overflow.append(neighbor)

            if len(members) < 2:
                continue

            visited.update(members)
            result.append((
                [self.node_ids[i] for i in members],
                [self.node_ids[i] for i in overflow],
            ))

        return result


def resolve_requests(
    players: List[Player],
    matcher: FuzzyNameMatcher,
    threshold: float = DEFAULT_MATCH_THRESHOLD
) -> RequestResolutions:
    """Resolve every teammate and avoid request against the roster names.

    Self-references are never resolved and repeated references to the same
    person collapse into the first one.
    """
    names = [p.name for p in players]
    resolutions = RequestResolutions()

    for position, player in enumerate(players):
        for attr, table in (("teammate_requests", resolutions.teammates), ("avoid_requests", resolutions.avoids)):
            resolved = []
            seen: Set[str] = set()
            for request_index, raw in enumerate(getattr(player, attr)):
                if not raw or not raw.strip():
                    continue
                resolution = matcher.resolve(raw, names, threshold, exclude=position)
                target_id = players[resolution.index].id if resolution.is_usable else None
                if target_id is not None:
                    if target_id in seen:
                        continue
                    seen.add(target_id)
                if resolution.status != "accepted":
                    logger.info("%s: %s", player.name, resolution.message)
                resolved.append(ResolvedRequest(player.id, raw, request_index, resolution, target_id))
            table[player.id] = resolved

    return resolutions


def detect_request_conflicts(players: List[Player], resolutions: RequestResolutions) -> List[RequestConflict]:
    """Flag avoid-vs-request and one-way requests for diagnostics.

    Neither kind blocks group formation on its own.
    """
    conflicts = []
    for player in players:
        for target_id in resolutions.requested_ids(player.id):
            if player.id in resolutions.avoided_ids(target_id):
                conflicts.append(RequestConflict(AVOID_VS_REQUEST, player.id, target_id))
            if player.id not in resolutions.requested_ids(target_id):
                conflicts.append(RequestConflict(ONE_WAY_REQUEST, player.id, target_id))
    return conflicts


def process_mutual_requests(
    players: List[Player],
    matcher: Optional[FuzzyNameMatcher] = None,
    threshold: float = DEFAULT_MATCH_THRESHOLD
) -> GroupingResult:
    """Turn teammate requests into symmetric affinity groups.

    Args:
        players: The full roster
        matcher: Name matcher; a fresh one is created when omitted
        threshold: Minimum match score to accept a name

    Returns:
        GroupingResult with players stamped with their group id and their
        unfulfilled requests
    """
    matcher = matcher or FuzzyNameMatcher()
    resolutions = resolve_requests(players, matcher, threshold)
    conflicts = detect_request_conflicts(players, resolutions)
    graph = MutualGraph.from_requests(players, resolutions)
    by_id = {p.id: p for p in players}

    groups = []
    near_misses = []
    group_of: Dict[str, str] = {}

    for members, overflow in graph.components(MAX_GROUP_SIZE):
        index = len(groups)
        group = PlayerGroup(
            id=f"group-{index}",
            label=group_label(index),
            color=group_color(index),
            player_ids=members,
            players=[replace(by_id[pid], group_id=f"group-{index}") for pid in members],
        )
        groups.append(group)
        for pid in members:
            group_of[pid] = group.id

        if overflow:
            near_misses.append(NearMiss(tuple(members + overflow), tuple(overflow)))
            logger.warning(
                "Group %s is capped at %d players; left out: %s",
                group.label, MAX_GROUP_SIZE, ", ".join(by_id[pid].name for pid in overflow)
            )

    conflict_pairs = {
        frozenset((c.requester_id, c.target_id)) for c in conflicts if c.kind == AVOID_VS_REQUEST
    }
    for player in players:
        for target_id in resolutions.avoided_ids(player.id):
            conflict_pairs.add(frozenset((player.id, target_id)))

    stamped = []
    for player in players:
        unfulfilled = []
        for request in resolutions.teammates.get(player.id, []):
            if request.target_id is None:
                continue
            own_group = group_of.get(player.id)
            if own_group is not None and own_group == group_of.get(request.target_id):
                continue
            if frozenset((player.id, request.target_id)) in conflict_pairs:
                reason = CONFLICT
            elif graph.has_edge(player.id, request.target_id):
                reason = GROUP_FULL
            else:
                reason = NON_RECIPROCAL
            unfulfilled.append(UnfulfilledRequest(by_id[request.target_id].name, reason, request.priority))

        stamped.append(replace(
            player,
            group_id=group_of.get(player.id),
            unfulfilled_requests=tuple(unfulfilled),
        ))

    logger.debug("Formed %d groups from %d players", len(groups), len(players))
    return GroupingResult(stamped, groups, near_misses, conflicts, resolutions)


def validate_groups_for_generation(groups: List[PlayerGroup], max_team_size: int) -> GroupValidation:
    """Pre-check groups against the team size before generation.

    A group larger than a team can never be placed (error); a group exactly
    the size of a team fills a whole team (warning).
    """
    validation = GroupValidation()
    for group in groups:
        if group.size > max_team_size:
            validation.errors.append(
                f"Group {group.label} has {group.size} players but teams hold at most {max_team_size}"
            )
        elif group.size == max_team_size:
            validation.warnings.append(
                f"Group {group.label} has {group.size} players and will fill an entire team"
            )
    return validation


def get_player_group(groups: List[PlayerGroup], player_id: str) -> Optional[PlayerGroup]:
    for group in groups:
        if player_id in group:
            return group
    return None


def get_groupmates(groups: List[PlayerGroup], player_id: str) -> List[str]:
    """Ids of the other members of the player's group."""
    group = get_player_group(groups, player_id)
    if group is None:
        return []
    return [pid for pid in group.player_ids if pid != player_id]


def are_players_in_same_group(groups: List[PlayerGroup], first_id: str, second_id: str) -> bool:
    group = get_player_group(groups, first_id)
    return group is not None and second_id in group
