import pytest
from click.testing import CliRunner

from manage import cli
from tipping.models import League, Race, Season, User


@pytest.fixture
def run(app_ctx):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, list(args), catch_exceptions=False)

    return _run


class TestSeasonCommands:
    def test_create_and_activate(self, run):
        result = run("season", "create", "2026", "--deadline", "2026-03-01 12:00", "--drivers", "22", "--activate")

        assert result.exit_code == 0
        assert "Created season 2026" in result.output
        season = Season.get_current_season()
        assert season.year == 2026
        assert season.driver_count == 22

    def test_create_twice(self, run):
        run("season", "create", "2026")

        result = run("season", "create", "2026")

        assert "already exists" in result.output
        assert Season.query.count() == 1


class TestRaceCommands:
    def test_add_then_update(self, run, make_season):
        make_season()

        run("race", "add", "2026", "1", "Australian GP", "--race-date", "2026-03-08 04:00")
        result = run(
            "race", "add", "2026", "1", "Australian Grand Prix",
            "--race-date", "2026-03-08 04:00", "--fp1", "2026-03-06 01:30", "--sprint",
        )

        assert "Updated R1 Australian Grand Prix" in result.output
        race = Race.query.one()
        assert race.is_sprint_weekend
        assert race.prediction_deadline == race.fp1_start


class TestUserCommands:
    def test_create_admin_then_promote(self, run, make_user):
        run("user", "create-admin", "steward", "Password123", "--display-name", "Race Control")
        make_user("lando")

        result = run("user", "create-admin", "lando", "ignored")

        assert "Promoted 'lando' to admin" in result.output
        assert {u.username for u in User.query.filter_by(is_admin=True)} == {"steward", "lando"}



class TestLeagueCommands:
    def test_create_world_league_once(self, run):
        result = run("league", "create-world")

        assert "Created world league 'World League'" in result.output
        assert League.get_world_league().name == "World League"

        result = run("league", "create-world", "Everyone")

        assert "already exists" in result.output
        assert League.query.count() == 1

    def test_unknown_creator(self, run):
        result = run("league", "create-world", "--creator", "nobody")

        assert "User 'nobody' not found" in result.output
        assert League.query.count() == 0


def test_recalculate_reports_counts(run):
    result = run("scores", "recalculate")

    assert result.exit_code == 0
    assert "Rescored 0, skipped 0 without results, 0 failed" in result.output


def test_status(run, make_season):
    make_season()

    result = run("status")

    assert "Database: Connected" in result.output
    assert "Current Season: 2026" in result.output
    assert "Cache: SimpleCache" in result.output
