"""Tests for the stats module."""

from team_builder.models import Team
from team_builder.stats import StatsCollector, get_team_summary, teams_to_dataframe


class TestStatsCollector:
    """Test cases for the StatsCollector class."""

    def _roster(self, make_player):
        return [
            make_player("Alice", requests=["Bruno", "Chen"]),
            make_player("Bruno", requests=["Alice"]),
            make_player("Chen", requests=["Nobody Here"], avoid=["Dmitri"]),
            make_player("Dmitri"),
        ]

    def test_honored_and_broken_by_tier(self, make_player):
        """Test requests are counted per priority tier."""
        alice, bruno, chen, dmitri = self._roster(make_player)
        teams = [
            Team("team-1", "Team 1", [alice, bruno]),
            Team("team-2", "Team 2", [chen, dmitri]),
        ]

        stats = StatsCollector().collect([alice, bruno, chen, dmitri], teams, [])

        assert stats.must_have_honored == 2
        assert stats.must_have_broken == 0
        assert stats.nice_to_have_honored == 0
        assert stats.nice_to_have_broken == 1
        assert stats.requests_honored == 2
        assert stats.requests_broken == 1
        assert stats.assigned_players == 4
        assert stats.unassigned_players == 0

    def test_unresolvable_requests_are_not_counted(self, make_player):
        """Test a name matching nobody counts as neither honored nor broken."""
        chen = make_player("Chen", requests=["Nobody Here"])
        dmitri = make_player("Dmitri")

        stats = StatsCollector().collect([chen, dmitri], [Team("team-1", "Team 1", [chen, dmitri])], [])

        assert stats.requests_honored == 0
        assert stats.requests_broken == 0

    def test_repeated_requests_count_once(self, make_player):
        """Test two spellings of the same teammate are one request."""
        alice = make_player("Alice", requests=["Robert", "Bob"])
        robert = make_player("Robert")

        stats = StatsCollector().collect([alice, robert], [Team("team-1", "Team 1", [alice, robert])], [])

        assert stats.must_have_honored == 1
        assert stats.nice_to_have_honored == 0
        assert stats.requests_broken == 0

    def test_unassigned_requests_are_broken(self, make_player):
        """Test requests of unassigned players are broken."""
        alice, bruno, chen, dmitri = self._roster(make_player)
        teams = [Team("team-1", "Team 1", [bruno, chen, dmitri])]

        stats = StatsCollector().collect([alice, bruno, chen, dmitri], teams, [alice])

        assert stats.must_have_honored == 0
        assert stats.must_have_broken == 2
        assert stats.nice_to_have_broken == 1
        assert stats.unassigned_players == 1

    def test_avoid_violations(self, make_player):
        """Test avoid requests naming a teammate are counted."""
        alice, bruno, chen, dmitri = self._roster(make_player)
        teams = [Team("team-1", "Team 1", [alice, bruno, chen, dmitri])]

        stats = StatsCollector().collect([alice, bruno, chen, dmitri], teams, [])

        assert stats.avoid_violations == 1

    def test_collect_is_idempotent(self, make_player):
        """Test collecting twice gives the same counts."""
        players = self._roster(make_player)
        teams = [Team("team-1", "Team 1", players[:2]), Team("team-2", "Team 2", players[2:])]
        collector = StatsCollector()

        assert collector.collect(players, teams, []) == collector.collect(players, teams, [])

    def test_to_dict(self):
        """Test the dictionary form includes the totals."""
        data = StatsCollector().collect([], [], []).to_dict()

        assert data['total_players'] == 0
        assert data['requests_honored'] == 0
        assert 'generation_time_ms' in data


class TestTeamSummary:
    """Test cases for team summaries."""

    def test_empty(self):
        """Test the summary of no teams."""
        summary = get_team_summary([])
        assert summary['total_players'] == 0
        assert summary['teams'] == {}

    def test_summary(self, make_player):
        """Test sizes, names and spread."""
        teams = [
            Team("team-1", "Team 1", [make_player("Alice", skill=4), make_player("Bruno", skill=6)]),
            Team("team-2", "Team 2", [make_player("Chen", skill=8)]),
        ]

        summary = get_team_summary(teams)

        assert summary['total_players'] == 3
        assert summary['teams']['Team 1'] == ["Alice", "Bruno"]
        assert summary['team_sizes'] == {"Team 1": 2, "Team 2": 1}
        assert summary['average_team_size'] == 1.5
        assert summary['skill_spread'] == 3.0

    def test_teams_to_dataframe(self, make_player):
        """Test one row per team with gender columns."""
        teams = [
            Team("team-1", "Team 1", [make_player("Alice", gender="F", handler=True), make_player("Bruno")]),
            Team("team-2", "Team 2"),
        ]

        df = teams_to_dataframe(teams)

        assert list(df.columns) == ['team', 'players', 'average_skill', 'handlers', 'M', 'F', 'Other']
        assert len(df) == 2
        first = df.iloc[0]
        assert first['players'] == 2
        assert first['handlers'] == 1
        assert first['F'] == 1
        assert first['M'] == 1
        assert df.iloc[1]['players'] == 0
