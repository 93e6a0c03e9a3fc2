"""Tests for the balancer module."""

from team_builder.balancer import SkillBalancer, sample_players, skill_spread
from team_builder.config import LeagueConfig
from team_builder.constraints import AvoidIndex
from team_builder.models import Team


def _teams(make_player, first, second):
    return [
        Team("team-1", "Team 1", [make_player(*args) for args in first]),
        Team("team-2", "Team 2", [make_player(*args) for args in second]),
    ]


class TestHelpers:
    """Test cases for the balancer helpers."""

    def test_sample_players_spreads_over_range(self, make_player):
        """Test sampling picks evenly spaced skill levels."""
        players = [make_player(f"P{i}", skill=float(i)) for i in range(10)]

        sampled = sample_players(players, 4)

        assert [p.skill_rating for p in sampled] == [0.0, 3.0, 6.0, 9.0]

    def test_sample_players_small_team(self, make_player):
        """Test a team smaller than the sample is returned whole."""
        players = [make_player("A", skill=7), make_player("B", skill=2)]
        assert [p.name for p in sample_players(players, 4)] == ["B", "A"]

    def test_skill_spread_ignores_empty_teams(self, make_player):
        """Test empty teams do not count toward the spread."""
        teams = [
            Team("team-1", "Team 1", [make_player("A", skill=3)]),
            Team("team-2", "Team 2", [make_player("B", skill=7)]),
            Team("team-3", "Team 3"),
        ]
        assert skill_spread(teams) == 4.0
        assert skill_spread(teams[:1]) == 0.0


class TestSkillBalancer:
    """Test cases for the SkillBalancer class."""

    def test_single_swap_evens_teams(self, make_player):
        """Test one swap between a weak and a strong team."""
        teams = _teams(make_player, [("A", "M", 1), ("B", "M", 1)], [("C", "M", 9), ("D", "M", 9)])

        report = SkillBalancer(LeagueConfig(), AvoidIndex()).balance(teams)

        assert len(report.swaps) == 1
        assert report.passes == 1
        assert report.initial_spread == 8.0
        assert report.final_spread == 0.0
        assert teams[0].average_skill == 5.0
        assert teams[1].average_skill == 5.0

    def test_swapped_players_carry_new_team(self, make_player):
        """Test moved players are stamped with their new team id."""
        teams = _teams(make_player, [("A", "M", 1), ("B", "M", 1)], [("C", "M", 9), ("D", "M", 9)])

        SkillBalancer(LeagueConfig(), AvoidIndex()).balance(teams)

        for team in teams:
            moved = [p for p in team.players if p.team_id is not None]
            assert all(p.team_id == team.id for p in moved)
            assert len(moved) == 1

    def test_locked_players_stay(self, make_player):
        """Test group members are never swapped."""
        teams = _teams(make_player, [("A", "M", 1), ("B", "M", 1)], [("C", "M", 9), ("D", "M", 9)])

        report = SkillBalancer(LeagueConfig(), AvoidIndex(), locked_ids=["a", "b"]).balance(teams)

        assert report.swaps == []
        assert teams[0].player_ids == ["a", "b"]
        assert teams[1].player_ids == ["c", "d"]

    def test_avoid_pairs_block_swaps(self, make_player):
        """Test a swap that would seat an avoid pair together is skipped."""
        teams = _teams(make_player, [("A", "M", 1), ("B", "M", 1)], [("C", "M", 9), ("D", "M", 9)])
        avoid_index = AvoidIndex([("a", "d"), ("b", "d")])

        report = SkillBalancer(LeagueConfig(), avoid_index).balance(teams)

        assert report.swaps == []
        assert report.final_spread == 8.0

    def test_balances_handlers(self, make_player):
        """Test the role term moves a handler to the team without one."""
        teams = [
            Team("team-1", "Team 1", [
                make_player("A", skill=4, handler=True),
                make_player("B", skill=4, handler=True),
            ]),
            Team("team-2", "Team 2", [make_player("C", skill=6), make_player("D", skill=6)]),
        ]

        SkillBalancer(LeagueConfig(), AvoidIndex()).balance(teams)

        assert [team.handler_count for team in teams] == [1, 1]
        assert teams[0].average_skill == teams[1].average_skill

    def test_gender_minimums_survive(self, make_player):
        """Test swaps never leave a team below its minimum."""
        config = LeagueConfig(max_team_size=2, min_females=1)
        teams = _teams(
            make_player,
            [("Fran", "F", 1), ("Mark", "M", 1)],
            [("Faye", "F", 9), ("Milo", "M", 9)],
        )

        report = SkillBalancer(config, AvoidIndex()).balance(teams)

        assert len(report.swaps) == 1
        assert all(team.gender_breakdown["F"] == 1 for team in teams)

    def test_stops_below_threshold(self, make_player):
        """Test close teams are left alone."""
        teams = _teams(make_player, [("A", "M", 5.0)], [("B", "M", 5.2)])

        report = SkillBalancer(LeagueConfig(), AvoidIndex()).balance(teams)

        assert report.passes == 0
        assert report.swaps == []
