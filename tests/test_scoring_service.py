import pytest

from tipping import db
from tipping.errors import AuthorizationError, NotFoundError, ValidationError
from tipping.models import CrazyPredictionValidation, RacePrediction
from tipping.scoring import ValidationState
from tipping.services import scoring_service
from tipping.services.scoring_service import (
    cast_vote,
    compute_leaderboard,
    pending_validations,
    recalculate_all,
    rescore_race,
    rescore_season,
    set_override,
    user_breakdown,
)


@pytest.fixture
def grid(app_ctx, make_user, make_season, make_race):
    admin = make_user("admin", is_admin=True)
    lando = make_user("lando", display_name="Lando")
    oscar = make_user("oscar", display_name="Oscar")
    season = make_season()
    race = make_race(season)
    return admin, lando, oscar, season, race


class TestRescoring:
    def test_race_prediction_scored_when_result_entered(
        self, grid, make_race_prediction, enter_race_result
    ):
        admin, lando, _, _, race = grid
        prediction = make_race_prediction(lando, race)
        enter_race_result(race, admin)

        report = rescore_race(race)

        assert report.rescored == 1
        assert prediction.points_earned == 5
        assert prediction.score_breakdown["podium"] == 3
        assert prediction.scored_at is not None

    def test_season_prediction_scored(self, grid, make_season_prediction, enter_season_result):
        admin, lando, _, season, _ = grid
        prediction = make_season_prediction(lando, season, new_team_choice="cadillac")
        enter_season_result(season, admin)

        rescore_season(season)

        # 3 drivers + 2 constructors, wrong new team
        assert prediction.points_earned == 5
        assert prediction.score_breakdown["new_team_duel"] == 0

    def test_without_result_prediction_stays_unjudged(self, grid, make_race_prediction):
        _, lando, _, _, _ = grid
        prediction = make_race_prediction(lando, grid[4])

        report = recalculate_all()

        assert report.skipped == 1
        assert report.rescored == 0
        assert prediction.points_earned is None

    def test_recalculate_all_is_idempotent(
        self, grid, make_race_prediction, make_season_prediction, enter_race_result, enter_season_result
    ):
        admin, lando, oscar, season, race = grid
        make_race_prediction(lando, race)
        make_race_prediction(oscar, race, podium_first_driver_id="norris")
        make_season_prediction(lando, season)
        enter_race_result(race, admin)
        enter_season_result(season, admin)

        first = recalculate_all()
        points_after_first = {p.id: p.points_earned for p in RacePrediction.query.all()}
        second = recalculate_all()
        points_after_second = {p.id: p.points_earned for p in RacePrediction.query.all()}

        assert first.rescored == second.rescored == 3
        assert points_after_first == points_after_second
        assert not second.failures

    def test_failures_are_collected_not_raised(
        self, grid, make_race_prediction, enter_race_result, monkeypatch
    ):
        admin, lando, _, _, race = grid
        prediction = make_race_prediction(lando, race)
        enter_race_result(race, admin)

        def boom(self):
            raise RuntimeError("corrupt row")

        monkeypatch.setattr(RacePrediction, "update_score", boom)
        report = recalculate_all()

        assert report.rescored == 0
        assert report.failures == [
            {"prediction_type": "race", "prediction_id": prediction.id, "error": "corrupt row"}
        ]
        assert db.session.get(RacePrediction, prediction.id).points_earned is None

    def test_resubmitting_clears_old_score(self, grid, make_race_prediction):
        _, lando, _, _, race = grid
        prediction = make_race_prediction(lando, race, points_earned=4)

        RacePrediction.submit(lando, race, {"pole_position_driver_id": "norris"})
        db.session.commit()

        assert prediction.points_earned is None
        assert prediction.pole_position_driver_id == "norris"


class TestCrazyPredictionVotes:
    @pytest.fixture
    def crazy(self, grid, make_race_prediction, enter_race_result):
        admin, lando, oscar, _, race = grid
        prediction = make_race_prediction(lando, race, crazy_prediction="Alpine scores double points")
        enter_race_result(race, admin, crazy_predictions_happened=[prediction.id])
        rescore_race(race)
        return prediction

    def test_unvalidated_crazy_prediction_that_happened_scores(self, crazy):
        assert crazy.crazy_validation_state() is ValidationState.UNVALIDATED
        assert crazy.points_earned == 6

    def test_self_vote_is_refused_and_changes_nothing(self, grid, crazy):
        _, lando, _, _, _ = grid

        with pytest.raises(AuthorizationError):
            cast_vote(lando, "race", crazy.id, False)

        assert CrazyPredictionValidation.query.count() == 0
        assert crazy.crazy_validation_state() is ValidationState.UNVALIDATED
        assert crazy.points_earned == 6

    def test_reject_removes_the_crazy_point(self, grid, crazy):
        _, _, oscar, _, _ = grid

        validation, created = cast_vote(oscar, "race", crazy.id, False)

        assert created
        assert not validation.is_validated
        assert crazy.crazy_validation_state() is ValidationState.REJECTED
        assert crazy.points_earned == 5

    def test_changing_a_vote_updates_the_single_row(self, grid, crazy):
        _, _, oscar, _, _ = grid

        cast_vote(oscar, "race", crazy.id, False)
        validation, created = cast_vote(oscar, "race", crazy.id, True)

        assert not created
        assert validation.is_validated
        assert CrazyPredictionValidation.query.count() == 1
        assert crazy.crazy_validation_state() is ValidationState.ACCEPTED
        assert crazy.points_earned == 6

    def test_admin_override_wins_over_votes_and_can_be_cleared(self, grid, crazy):
        admin, _, oscar, _, _ = grid
        cast_vote(oscar, "race", crazy.id, False)

        set_override(admin, "race", crazy.id, True)
        assert crazy.crazy_validation_state() is ValidationState.ACCEPTED
        assert crazy.points_earned == 6

        set_override(admin, "race", crazy.id, None)
        assert crazy.crazy_validation_state() is ValidationState.REJECTED
        assert crazy.points_earned == 5

    def test_prediction_without_crazy_text_cannot_be_voted(self, grid, make_race_prediction):
        _, _, oscar, _, race = grid
        plain = make_race_prediction(grid[0], race)

        with pytest.raises(NotFoundError):
            cast_vote(oscar, "race", plain.id, True)

    def test_unknown_prediction_type(self, grid, crazy):
        with pytest.raises(ValidationError):
            cast_vote(grid[2], "qualifying", crazy.id, True)

    def test_pending_lists_other_users_predictions(self, grid, crazy):
        _, lando, oscar, _, _ = grid

        assert pending_validations(lando) == []
        pending = pending_validations(oscar)
        assert [item["prediction_id"] for item in pending] == [crazy.id]
        assert pending[0]["already_validated"] is False

        cast_vote(oscar, "race", crazy.id, True)
        pending = pending_validations(oscar, season_year=2026)
        assert pending[0]["my_vote"] is True
        assert pending[0]["accept_count"] == 1


class TestStandings:
    def test_leaderboard_sums_season_and_race_points(
        self,
        grid,
        make_league,
        make_race,
        make_race_prediction,
        make_season_prediction,
        enter_race_result,
        enter_season_result,
    ):
        admin, lando, oscar, season, race = grid
        second_race = make_race(season, round_number=2)
        league = make_league("Paddock", lando, members=[oscar])

        make_season_prediction(lando, season, constructors_championship_order=["ferrari", "mclaren"])
        make_race_prediction(lando, race, podium_second_driver_id="leclerc", podium_third_driver_id="norris")
        make_race_prediction(lando, second_race)
        make_race_prediction(oscar, race)
        enter_season_result(season, admin)
        enter_race_result(race, admin)
        recalculate_all()

        entries = compute_leaderboard(league.get_member_ids(), 2026)
        by_user = {entry.user_id: entry for entry in entries}

        # Season 4 (3 drivers + new team), race 3, second race unjudged
        assert by_user[lando.id].season_points == 4
        assert by_user[lando.id].race_points == 3
        assert by_user[lando.id].total_points == 7
        assert by_user[oscar.id].total_points == 5
        assert [entry.user_id for entry in entries] == [lando.id, oscar.id]

    def test_unknown_season(self, grid):
        with pytest.raises(NotFoundError):
            compute_leaderboard([grid[1].id], 1999)

    def test_league_leaderboard_is_cached_until_scores_change(
        self, grid, make_league, make_race_prediction, enter_race_result
    ):
        admin, lando, oscar, _, race = grid
        league = make_league("Paddock", lando, members=[oscar])
        make_race_prediction(lando, race)

        before = scoring_service.league_leaderboard(league.id, 2026)
        assert all(row["total_points"] == 0 for row in before)

        enter_race_result(race, admin)
        rescore_race(race)

        after = scoring_service.league_leaderboard(league.id, 2026)
        assert after[0]["user_id"] == lando.id
        assert after[0]["total_points"] == 5

    def test_league_leaderboard_refreshes_when_membership_changes(self, grid, make_league):
        _, lando, oscar, _, _ = grid
        league = make_league("Paddock", lando)
        assert [row["user_id"] for row in scoring_service.league_leaderboard(league.id, 2026)] == [
            lando.id
        ]

        league.add_member(oscar)
        db.session.commit()
        scoring_service.membership_changed(league)

        rows = scoring_service.league_leaderboard(league.id, 2026)
        assert [row["user_id"] for row in rows] == [lando.id, oscar.id]

    def test_world_league_ranks_everyone_who_joined(
        self, grid, make_league, make_race_prediction, enter_race_result
    ):
        admin, lando, oscar, _, race = grid
        world = make_league("World", admin, members=[admin, lando], world=True)
        make_race_prediction(admin, race)
        enter_race_result(race, admin)
        rescore_race(race)

        assert world.get_member_ids() == {admin.id, lando.id}
        assert not world.is_user_member(oscar.id)
        entries = compute_leaderboard(world.get_member_ids(), 2026)
        assert [(entry.user_id, entry.total_points) for entry in entries] == [
            (admin.id, 5),
            (lando.id, 0),
        ]

    def test_user_breakdown(self, grid, make_race_prediction, enter_race_result):
        admin, lando, _, _, race = grid
        make_race_prediction(lando, race, pole_position_driver_id="norris")
        enter_race_result(race, admin)
        rescore_race(race)

        breakdown = user_breakdown(lando.id, 2026)

        assert breakdown["season_prediction"] is None
        assert breakdown["races"][0]["score_breakdown"]["pole_position"] == 0
        assert breakdown["total_points"] == 4
