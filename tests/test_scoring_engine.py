"""
Scoring engine rules, run against plain objects (no database)
"""

from types import SimpleNamespace

import pytest

from tipping.errors import NotFoundError, ValidationError
from tipping.scoring import (
    NO_NEW_WINNERS,
    RaceCategory,
    SeasonCategory,
    ValidationState,
    Vote,
    compare_grid_pairings,
    score_race_prediction,
    score_season_prediction,
    validation_state,
)
from tipping.scoring.categories import SackingPolicy
from tipping.scoring.engine import score_sackings


def season_prediction(**fields):
    values = dict(
        id=11,
        season_id=1,
        drivers_championship_order=[],
        constructors_championship_order=[],
        mid_season_sackings=[],
        new_team_choice=None,
        first_career_race_winners=[],
        crazy_prediction=None,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def season_result(**fields):
    values = dict(
        season_id=1,
        drivers_championship_order=[],
        constructors_championship_order=[],
        mid_season_sackings=[],
        new_team_winner=None,
        first_career_race_winners=[],
        crazy_predictions_happened=[],
    )
    values.update(fields)
    return SimpleNamespace(**values)


def race_prediction(**fields):
    values = dict(
        id=21,
        race_id=5,
        pole_position_driver_id=None,
        podium_first_driver_id=None,
        podium_second_driver_id=None,
        podium_third_driver_id=None,
        midfield_hero_driver_id=None,
        sprint_pole_driver_id=None,
        sprint_winner_driver_id=None,
        sprint_midfield_hero_driver_id=None,
        crazy_prediction=None,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def race_result(**fields):
    values = dict(
        race_id=5,
        pole_position_driver_id=None,
        podium_first_driver_id=None,
        podium_second_driver_id=None,
        podium_third_driver_id=None,
        midfield_hero_driver_id=None,
        sprint_pole_driver_id=None,
        sprint_winner_driver_id=None,
        sprint_midfield_hero_driver_id=None,
        crazy_predictions_happened=[],
        has_sprint=False,
    )
    values.update(fields)
    return SimpleNamespace(**values)


class TestChampionshipOrder:
    def test_swapped_drivers_score_only_the_matching_slot(self):
        card = score_season_prediction(
            season_prediction(drivers_championship_order=["A", "B", "C"]),
            season_result(drivers_championship_order=["B", "A", "C"]),
        )
        assert card.per_category[SeasonCategory.DRIVERS_CHAMPIONSHIP] == 1

    def test_perfect_order_scores_every_position(self):
        order = ["A", "B", "C", "D"]
        card = score_season_prediction(
            season_prediction(drivers_championship_order=order),
            season_result(drivers_championship_order=order),
        )
        assert card.per_category[SeasonCategory.DRIVERS_CHAMPIONSHIP] == 4

    def test_different_lengths_compare_over_the_shorter_list(self):
        card = score_season_prediction(
            season_prediction(drivers_championship_order=["A", "B"]),
            season_result(drivers_championship_order=["A", "B", "C"]),
        )
        assert card.per_category[SeasonCategory.DRIVERS_CHAMPIONSHIP] == 2

    def test_constructors_use_the_same_rule(self):
        card = score_season_prediction(
            season_prediction(constructors_championship_order=["mclaren", "ferrari", "mercedes"]),
            season_result(constructors_championship_order=["ferrari", "mclaren", "mercedes"]),
        )
        assert card.per_category[SeasonCategory.CONSTRUCTORS_CHAMPIONSHIP] == 1


class TestSackings:
    def test_any_overlap_scores_flat_point(self):
        card = score_season_prediction(
            season_prediction(mid_season_sackings=["doohan", "horner"]),
            season_result(mid_season_sackings=["horner"]),
        )
        assert card.per_category[SeasonCategory.SACKINGS] == 1

    def test_two_correct_sackings_still_score_one(self):
        assert score_sackings(["doohan", "horner"], ["doohan", "horner"]) == 1

    def test_no_overlap_scores_zero(self):
        assert score_sackings(["doohan"], ["horner"]) == 0

    def test_empty_prediction_never_scores(self):
        assert score_sackings([], []) == 0
        assert score_sackings(None, ["horner"]) == 0

    def test_exact_set_policy(self):
        assert score_sackings(["doohan", "horner"], ["horner", "doohan"], SackingPolicy.EXACT_SET) == 1
        assert score_sackings(["doohan"], ["doohan", "horner"], SackingPolicy.EXACT_SET) == 0


class TestSeasonChoices:
    def test_new_team_duel(self):
        prediction = season_prediction(new_team_choice="cadillac")
        assert score_season_prediction(prediction, season_result(new_team_winner="cadillac")).per_category[
            SeasonCategory.NEW_TEAM_DUEL
        ] == 1
        assert score_season_prediction(prediction, season_result(new_team_winner="audi")).per_category[
            SeasonCategory.NEW_TEAM_DUEL
        ] == 0

    def test_first_career_winners_point_per_driver(self):
        card = score_season_prediction(
            season_prediction(first_career_race_winners=["piastri", "antonelli", "bearman"]),
            season_result(first_career_race_winners=["antonelli", "bearman"]),
        )
        assert card.per_category[SeasonCategory.FIRST_CAREER_WINNERS] == 2

    def test_no_new_winners_sentinel_confirmed(self):
        card = score_season_prediction(
            season_prediction(first_career_race_winners=[NO_NEW_WINNERS]),
            season_result(first_career_race_winners=[]),
        )
        assert card.per_category[SeasonCategory.FIRST_CAREER_WINNERS] == 1

    def test_no_new_winners_sentinel_wrong(self):
        card = score_season_prediction(
            season_prediction(first_career_race_winners=[NO_NEW_WINNERS]),
            season_result(first_career_race_winners=["antonelli"]),
        )
        assert card.per_category[SeasonCategory.FIRST_CAREER_WINNERS] == 0

    def test_future_grids_are_comparison_only(self):
        predicted = [
            {"driver_id": "verstappen", "team_id": "red_bull"},
            {"driver_id": "hamilton", "team_id": "ferrari"},
        ]
        actual = [
            {"driver_id": "verstappen", "team_id": "mercedes"},
            {"driver_id": "hamilton", "team_id": "ferrari"},
        ]
        assert compare_grid_pairings(predicted, actual) == 1
        assert compare_grid_pairings(predicted, []) == 0


class TestPodium:
    def test_right_drivers_wrong_order_score_zero(self):
        card = score_race_prediction(
            race_prediction(
                podium_first_driver_id="norris",
                podium_second_driver_id="leclerc",
                podium_third_driver_id="verstappen",
            ),
            race_result(
                podium_first_driver_id="verstappen",
                podium_second_driver_id="norris",
                podium_third_driver_id="leclerc",
            ),
        )
        assert card.per_category[RaceCategory.PODIUM] == 0

    def test_each_exact_position_scores(self):
        card = score_race_prediction(
            race_prediction(
                podium_first_driver_id="verstappen",
                podium_second_driver_id="leclerc",
                podium_third_driver_id="norris",
            ),
            race_result(
                podium_first_driver_id="verstappen",
                podium_second_driver_id="norris",
                podium_third_driver_id="leclerc",
            ),
        )
        assert card.per_category[RaceCategory.PODIUM] == 1

    def test_pole_and_midfield_hero(self):
        card = score_race_prediction(
            race_prediction(pole_position_driver_id="norris", midfield_hero_driver_id="albon"),
            race_result(pole_position_driver_id="norris", midfield_hero_driver_id="hulkenberg"),
        )
        assert card.per_category[RaceCategory.POLE_POSITION] == 1
        assert card.per_category[RaceCategory.MIDFIELD_HERO] == 0


class TestSprint:
    SPRINT_PICKS = dict(
        sprint_pole_driver_id="piastri",
        sprint_winner_driver_id="piastri",
        sprint_midfield_hero_driver_id="ocon",
    )

    def test_sprint_scores_when_a_sprint_happened(self):
        card = score_race_prediction(
            race_prediction(**self.SPRINT_PICKS),
            race_result(has_sprint=True, **self.SPRINT_PICKS),
        )
        assert card.per_category[RaceCategory.SPRINT_POLE] == 1
        assert card.per_category[RaceCategory.SPRINT_WINNER] == 1
        assert card.per_category[RaceCategory.SPRINT_MIDFIELD_HERO] == 1

    def test_sprint_picks_against_sprintless_result_score_zero(self):
        card = score_race_prediction(race_prediction(**self.SPRINT_PICKS), race_result(has_sprint=False))
        assert card.per_category[RaceCategory.SPRINT_POLE] == 0
        assert card.per_category[RaceCategory.SPRINT_WINNER] == 0
        assert card.per_category[RaceCategory.SPRINT_MIDFIELD_HERO] == 0


class TestCrazyPrediction:
    def make(self, happened):
        prediction = race_prediction(crazy_prediction="Alpine scores double points")
        result = race_result(crazy_predictions_happened=[prediction.id] if happened else [])
        return prediction, result

    def test_validated_and_happened(self):
        prediction, result = self.make(happened=True)
        state = validation_state([Vote(validator_id=7, accepted=True)])
        card = score_race_prediction(prediction, result, state)
        assert card.per_category[RaceCategory.CRAZY_PREDICTION] == 1

    def test_validated_but_not_happened(self):
        prediction, result = self.make(happened=False)
        card = score_race_prediction(prediction, result, ValidationState.ACCEPTED)
        assert card.per_category[RaceCategory.CRAZY_PREDICTION] == 0

    def test_happened_but_rejected(self):
        prediction, result = self.make(happened=True)
        card = score_race_prediction(prediction, result, ValidationState.REJECTED)
        assert card.per_category[RaceCategory.CRAZY_PREDICTION] == 0

    def test_unvalidated_counts_as_accepted(self):
        prediction, result = self.make(happened=True)
        card = score_race_prediction(prediction, result, ValidationState.UNVALIDATED)
        assert card.per_category[RaceCategory.CRAZY_PREDICTION] == 1

    def test_blank_crazy_prediction_never_scores(self):
        prediction = season_prediction(crazy_prediction="   ")
        result = season_result(crazy_predictions_happened=[prediction.id])
        card = score_season_prediction(prediction, result, ValidationState.ACCEPTED)
        assert card.per_category[SeasonCategory.CRAZY_PREDICTION] == 0


class TestFailureSemantics:
    def test_missing_race_result_defers(self):
        with pytest.raises(NotFoundError):
            score_race_prediction(race_prediction(), None)

    def test_missing_season_result_defers(self):
        with pytest.raises(NotFoundError):
            score_season_prediction(season_prediction(), None)

    def test_mismatched_race_is_rejected(self):
        with pytest.raises(ValidationError):
            score_race_prediction(race_prediction(race_id=5), race_result(race_id=6))

    def test_mismatched_season_is_rejected(self):
        with pytest.raises(ValidationError):
            score_season_prediction(season_prediction(season_id=1), season_result(season_id=2))

    def test_empty_prediction_scores_zero_everywhere(self):
        card = score_race_prediction(
            race_prediction(),
            race_result(pole_position_driver_id="norris", podium_first_driver_id="norris"),
        )
        assert card.total == 0
        assert set(card.per_category) == set(RaceCategory)


class TestScoreCard:
    def test_every_category_present(self):
        card = score_season_prediction(season_prediction(), season_result())
        assert set(card.per_category) == set(SeasonCategory)

    def test_total_is_sum_and_serialises(self):
        card = score_race_prediction(
            race_prediction(pole_position_driver_id="norris", podium_first_driver_id="norris"),
            race_result(pole_position_driver_id="norris", podium_first_driver_id="norris"),
        )
        assert card.total == 2
        data = card.to_dict()
        assert data["total"] == 2
        assert data["per_category"]["pole_position"] == 1
        assert data["per_category"]["podium"] == 1

    def test_scoring_is_idempotent(self):
        prediction = season_prediction(
            drivers_championship_order=["A", "B", "C"],
            mid_season_sackings=["horner"],
            crazy_prediction="Ocon wins Monaco",
        )
        result = season_result(
            drivers_championship_order=["A", "C", "B"],
            mid_season_sackings=["horner"],
            crazy_predictions_happened=[prediction.id],
        )
        first = score_season_prediction(prediction, result, ValidationState.ACCEPTED)
        second = score_season_prediction(prediction, result, ValidationState.ACCEPTED)
        assert first == second
        assert first.total == 3
