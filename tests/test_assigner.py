"""Tests for the assigner module."""

import random

import pytest

from team_builder.assigner import MANUAL, RANDOM, GenerationResult, TeamAssigner, generate_teams
from team_builder.config import LeagueConfig
from team_builder.constraints import AvoidIndex
from team_builder.exceptions import MoveRejectedError
from team_builder.models import PlayerGroup, Team


def _team_of(result: GenerationResult, player_id: str):
    return result.assignments().get(player_id)


class TestTeamAssigner:
    """Test cases for the TeamAssigner class."""

    def test_can_join_team(self, make_player):
        """Test the _can_join_team method."""
        config = LeagueConfig(max_team_size=4)
        assigner = TeamAssigner(config)
        avoid_index = AvoidIndex([("alice", "bob")])
        alice, bob, charlie = make_player("Alice"), make_player("Bob"), make_player("Charlie")

        # Alice cannot join a team with Bob
        assert not assigner._can_join_team([alice], Team("t1", "Team 1", [bob]), avoid_index)
        assert not assigner._can_join_team([bob], Team("t1", "Team 1", [alice]), avoid_index)

        # Alice can join a team with Charlie
        assert assigner._can_join_team([alice], Team("t1", "Team 1", [charlie]), avoid_index)

        # Alice can join an empty team
        assert assigner._can_join_team([alice], Team("t1", "Team 1"), avoid_index)

        # A unit that avoids itself fits nowhere
        assert not assigner._can_join_team([alice, bob], Team("t1", "Team 1"), avoid_index)

    def test_can_join_team_respects_capacity_and_quota(self, make_player):
        """Test capacity and gender quota achievability."""
        config = LeagueConfig(max_team_size=3, min_females=1)
        assigner = TeamAssigner(config)
        avoid_index = AvoidIndex()
        team = Team("t1", "Team 1", [make_player("Mo", gender="M")])

        assert assigner._can_join_team([make_player("Max", gender="M")], team, avoid_index)
        assert not assigner._can_join_team(
            [make_player("Max", gender="M"), make_player("Milo", gender="M")], team, avoid_index
        )
        assert assigner._can_join_team(
            [make_player("Max", gender="M"), make_player("Fay", gender="F")], team, avoid_index
        )
        assert not assigner._can_join_team(
            [make_player(f"P{i}", gender="F") for i in range(3)], team, avoid_index
        )

    def test_target_team_count(self):
        """Test the number of team slots."""
        assigner = TeamAssigner(LeagueConfig(max_team_size=4))
        assert assigner.target_team_count(10) == 3
        assert assigner.target_team_count(0) == 0

        assigner.config.target_teams = 5
        assert assigner.target_team_count(10) == 5

        assigner.config.target_teams = 0
        assert assigner.target_team_count(10) == 0

    def test_unknown_mode(self, make_player):
        """Test an unknown mode is rejected."""
        with pytest.raises(ValueError, match="Unknown generation mode"):
            TeamAssigner(LeagueConfig()).generate([make_player("Alice")], mode="draft")


class TestBalancedGeneration:
    """Test cases for balanced generation."""

    def test_mutual_pair_share_team(self, make_player, small_config, rng):
        """Test two players who request each other land together."""
        players = [
            make_player("Alice", requests=["Bob"]),
            make_player("Bob", requests=["Alice"]),
            make_player("Charlie"),
            make_player("David"),
        ]

        result = TeamAssigner(small_config, rng=rng).generate(players)

        assert _team_of(result, "alice") is not None
        assert _team_of(result, "alice") == _team_of(result, "bob")
        assert result.unassigned == []
        assert len(result.teams) == 2
        assert result.stats.must_have_honored == 2

    def test_avoid_is_hard(self, make_player, rng):
        """Test players who avoid each other never share the only team."""
        config = LeagueConfig(max_team_size=2, target_teams=1)
        players = [make_player("Xavier", avoid=["Yusuf"]), make_player("Yusuf")]

        result = TeamAssigner(config, rng=rng).generate(players)

        assert _team_of(result, "xavier") != _team_of(result, "yusuf")
        assert [p.id for p in result.unassigned] == ["yusuf"]
        assert result.stats.avoid_violations == 0

    def test_custom_group_fills_one_team(self, make_player, rng):
        """Test a custom group of three plus nine singletons."""
        config = LeagueConfig(max_team_size=4, target_teams=3)
        players = [make_player(f"Player {i}", skill=float(i % 10)) for i in range(12)]
        group = PlayerGroup(id="custom-0", label="A", color="#3B82F6",
                            player_ids=["player-0", "player-1", "player-2"])

        result = TeamAssigner(config, rng=rng).generate(players, [group])

        group_team = _team_of(result, "player-0")
        assert group_team is not None
        assert _team_of(result, "player-1") == group_team
        assert _team_of(result, "player-2") == group_team
        assert result.find_team(group_team).size <= 4
        assert result.unassigned == []
        assert all(team.size <= 4 for team in result.teams)

    def test_gender_minimums(self, make_player, rng):
        """Test each team receives its minimum number of women."""
        config = LeagueConfig(max_team_size=2, min_females=1, target_teams=2)
        players = [
            make_player("Adam", gender="M", skill=9),
            make_player("Ben", gender="M", skill=8),
            make_player("Cara", gender="F", skill=2),
            make_player("Dana", gender="F", skill=1),
        ]

        result = TeamAssigner(config, rng=rng).generate(players)

        assert len(result.teams) == 2
        assert all(team.gender_breakdown["F"] >= 1 for team in result.teams)

    def test_oversized_group_goes_unassigned(self, make_player, small_config, rng):
        """Test a unit that fits no team is never split."""
        players = [make_player(name) for name in ("Alice", "Bruno", "Chen", "Dmitri")]
        group = PlayerGroup(id="custom-0", label="A", color="#3B82F6",
                            player_ids=["alice", "bruno", "chen"])

        result = TeamAssigner(small_config, rng=rng).generate(players, [group])

        assert {p.id for p in result.unassigned} == {"alice", "bruno", "chen"}
        assert _team_of(result, "dmitri") is not None

    def test_league_exclusions_are_hard(self, make_player, rng):
        """Test players in a league exclusion group never share a team."""
        config = LeagueConfig(max_team_size=2, target_teams=1)
        config.exclusions = [{"Alice", "Bob"}]
        players = [make_player("Alice"), make_player("Bob")]

        assigner = TeamAssigner(config, rng=rng)
        result = assigner.generate(players)

        assert _team_of(result, "alice") != _team_of(result, "bob")
        assert len(result.unassigned) == 1

        placed = "alice" if _team_of(result, "alice") else "bob"
        other = "bob" if placed == "alice" else "alice"
        with pytest.raises(MoveRejectedError, match="avoid conflict"):
            assigner.move_player(result, other, _team_of(result, placed), force=True)

    def test_empty_roster(self):
        """Test generation with no players."""
        result = generate_teams([], LeagueConfig())

        assert result.teams == []
        assert result.unassigned == []
        assert result.stats.total_players == 0

    def test_zero_target_teams(self, make_player):
        """Test zero team slots leaves everyone unassigned."""
        config = LeagueConfig(target_teams=0)
        result = generate_teams([make_player("Alice"), make_player("Bruno")], config)

        assert result.teams == []
        assert len(result.unassigned) == 2
        assert result.stats.unassigned_players == 2

    def test_players_are_stamped(self, make_player, small_config, rng):
        """Test result players carry their team and group ids."""
        players = [
            make_player("Alice", requests=["Bob"]),
            make_player("Bob", requests=["Alice"]),
        ]

        result = TeamAssigner(small_config, rng=rng).generate(players)

        alice = next(p for p in result.roster if p.id == "alice")
        assert alice.team_id == _team_of(result, "alice")
        assert alice.group_id == result.groups[0].id
        assert players[0].team_id is None


class TestRandomGeneration:
    """Test cases for randomized generation."""

    def test_hard_constraints_hold(self, make_player):
        """Test capacity, avoid and group constraints over several seeds."""
        config = LeagueConfig(max_team_size=3, target_teams=3)
        players = [
            make_player("Alice", requests=["Bruno"], avoid=["Chen"]),
            make_player("Bruno", requests=["Alice"]),
            make_player("Chen"),
            make_player("Dmitri", avoid=["Eve"]),
            make_player("Eve"),
            make_player("Finn"),
            make_player("Greta"),
            make_player("Hiro"),
        ]

        for seed in range(10):
            result = TeamAssigner(config, rng=random.Random(seed)).generate(players, mode=RANDOM)
            teams = result.assignments()

            assert all(team.size <= 3 for team in result.teams)
            assert teams["alice"] == teams["bruno"]
            assert teams["alice"] is None or teams["alice"] != teams["chen"]
            assert teams["dmitri"] is None or teams["dmitri"] != teams["eve"]
            assert result.stats.avoid_violations == 0

    def test_seeded_runs_repeat(self, make_player):
        """Test the same seed gives the same teams."""
        config = LeagueConfig(max_team_size=2)
        players = [make_player(f"Player {i}") for i in range(6)]

        first = TeamAssigner(config, rng=random.Random(7)).generate(players, mode=RANDOM)
        second = TeamAssigner(config, rng=random.Random(7)).generate(players, mode=RANDOM)

        assert first.assignments() == second.assignments()


class TestManualMode:
    """Test cases for manual mode and player moves."""

    def _roster(self, make_player):
        return [
            make_player("Alice", requests=["Bob"]),
            make_player("Bob", requests=["Alice"]),
            make_player("Carol", avoid=["Alice"]),
        ] + [make_player(f"Player {i}") for i in range(7)]

    def test_manual_leaves_everyone_unassigned(self, make_player):
        """Test manual mode creates empty teams only."""
        config = LeagueConfig(target_teams=3)

        result = TeamAssigner(config).generate(self._roster(make_player), mode=MANUAL)

        assert len(result.teams) == 3
        assert all(team.players == [] for team in result.teams)
        assert len(result.unassigned) == 10
        assert len(result.groups) == 1

    def test_move_player(self, make_player):
        """Test moving a player in and out of a team."""
        assigner = TeamAssigner(LeagueConfig(target_teams=3))
        result = assigner.generate(self._roster(make_player), mode=MANUAL)

        moved = assigner.move_player(result, "player-0", "team-1")

        assert _team_of(moved, "player-0") == "team-1"
        assert moved.stats.assigned_players == 1
        assert result.stats.assigned_players == 0

        back = assigner.move_player(moved, "player-0", None)
        assert _team_of(back, "player-0") is None
        assert assigner.move_player(back, "player-0", None) is back

    def test_move_rejects_avoid_conflict(self, make_player):
        """Test avoid conflicts are rejected even when forced."""
        assigner = TeamAssigner(LeagueConfig(target_teams=3))
        result = assigner.generate(self._roster(make_player), mode=MANUAL)
        result = assigner.move_player(result, "alice", "team-1")

        with pytest.raises(MoveRejectedError, match="avoid conflict"):
            assigner.move_player(result, "carol", "team-1")
        with pytest.raises(MoveRejectedError):
            assigner.move_player(result, "carol", "team-1", force=True)

    def test_move_rejects_group_split(self, make_player):
        """Test group members cannot end up on different teams unless forced."""
        assigner = TeamAssigner(LeagueConfig(target_teams=3))
        result = assigner.generate(self._roster(make_player), mode=MANUAL)
        result = assigner.move_player(result, "alice", "team-1")

        with pytest.raises(MoveRejectedError) as excinfo:
            assigner.move_player(result, "bob", "team-2")
        assert "split" in excinfo.value.reason

        together = assigner.move_player(result, "bob", "team-1")
        assert _team_of(together, "bob") == "team-1"

        forced = assigner.move_player(result, "bob", "team-2", force=True)
        assert _team_of(forced, "bob") == "team-2"

    def test_move_rejects_leaving_group_on_team(self, make_player, small_config, rng):
        """Test a group member cannot be unassigned while a groupmate stays placed."""
        assigner = TeamAssigner(small_config, rng=rng)
        players = [
            make_player("Alice", requests=["Bob"]),
            make_player("Bob", requests=["Alice"]),
        ]
        result = assigner.generate(players)
        team_id = _team_of(result, "alice")
        assert team_id is not None and _team_of(result, "bob") == team_id

        with pytest.raises(MoveRejectedError) as excinfo:
            assigner.move_player(result, "alice", None)
        assert "split" in excinfo.value.reason
        assert _team_of(result, "alice") == team_id

        forced = assigner.move_player(result, "alice", None, force=True)
        assert _team_of(forced, "alice") is None
        assert _team_of(forced, "bob") == team_id

        # Once both are unassigned the group is whole again
        both_out = assigner.move_player(forced, "bob", None)
        assert _team_of(both_out, "bob") is None

    def test_move_rejects_full_team(self, make_player):
        """Test capacity is enforced unless forced."""
        assigner = TeamAssigner(LeagueConfig(max_team_size=1, target_teams=3))
        result = assigner.generate(self._roster(make_player), mode=MANUAL)
        result = assigner.move_player(result, "player-0", "team-1")

        with pytest.raises(MoveRejectedError, match="full"):
            assigner.move_player(result, "player-1", "team-1")

        forced = assigner.move_player(result, "player-1", "team-1", force=True)
        assert forced.find_team("team-1").size == 2

    def test_move_unknown_player_or_team(self, make_player):
        """Test moves naming unknown ids are rejected."""
        assigner = TeamAssigner(LeagueConfig(target_teams=3))
        result = assigner.generate(self._roster(make_player), mode=MANUAL)

        with pytest.raises(MoveRejectedError, match="player not found"):
            assigner.move_player(result, "nobody", "team-1")
        with pytest.raises(MoveRejectedError, match="not found"):
            assigner.move_player(result, "alice", "team-9")
