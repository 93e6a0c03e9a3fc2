"""Data model for Team Builder."""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

GENDERS = ("M", "F", "Other")

MUST_HAVE = "must-have"
NICE_TO_HAVE = "nice-to-have"


def request_priority(index: int) -> str:
    """Priority tier of a teammate request based on its list position."""
    return MUST_HAVE if index == 0 else NICE_TO_HAVE


@dataclass(frozen=True)
class UnfulfilledRequest:
    """A teammate request that did not end up inside the player's group."""

    name: str
    reason: str
    priority: str


@dataclass(frozen=True)
class Player:
    """A roster entry.

    Players are immutable; pipeline stages hand out updated copies made with
    ``dataclasses.replace`` instead of mutating shared objects.
    """

    id: str
    name: str
    gender: str = "Other"
    skill_rating: float = 5.0
    exec_skill_rating: Optional[float] = None
    teammate_requests: Tuple[str, ...] = ()
    avoid_requests: Tuple[str, ...] = ()
    team_id: Optional[str] = None
    group_id: Optional[str] = None
    is_handler: bool = False
    unfulfilled_requests: Tuple[UnfulfilledRequest, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but store tuples so the value stays hashable
        object.__setattr__(self, "teammate_requests", tuple(self.teammate_requests))
        object.__setattr__(self, "avoid_requests", tuple(self.avoid_requests))
        object.__setattr__(self, "unfulfilled_requests", tuple(self.unfulfilled_requests))

    @property
    def effective_skill(self) -> float:
        """The exec rating when one exists, otherwise the regular rating."""
        if self.exec_skill_rating is not None:
            return self.exec_skill_rating
        return self.skill_rating

    def with_team(self, team_id: Optional[str]) -> "Player":
        return replace(self, team_id=team_id)


@dataclass
class Team:
    """A team and its members.

    The derived statistics are properties, so they always reflect the current
    ``players`` list.
    """

    id: str
    name: str
    players: List[Player] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.players)

    @property
    def average_skill(self) -> float:
        if not self.players:
            return 0.0
        return sum(p.effective_skill for p in self.players) / len(self.players)

    @property
    def gender_breakdown(self) -> Dict[str, int]:
        breakdown = {gender: 0 for gender in GENDERS}
        for player in self.players:
            breakdown[player.gender if player.gender in breakdown else "Other"] += 1
        return breakdown

    @property
    def handler_count(self) -> int:
        return sum(1 for p in self.players if p.is_handler)

    @property
    def player_ids(self) -> List[str]:
        return [p.id for p in self.players]


@dataclass(frozen=True)
class PlayerGroup:
    """Players that must be placed on the same team or not at all."""

    id: str
    label: str
    color: str
    player_ids: Tuple[str, ...]
    players: Tuple[Player, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "player_ids", tuple(self.player_ids))
        object.__setattr__(self, "players", tuple(self.players))

    @property
    def size(self) -> int:
        return len(self.player_ids)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self.player_ids


def average_skill(players) -> float:
    """Mean effective skill of a collection of players (0.0 when empty)."""
    players = list(players)
    if not players:
        return 0.0
    return sum(p.effective_skill for p in players) / len(players)
