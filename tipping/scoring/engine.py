"""
Scoring Engine for the F1 tipping competition

Pure functions over one prediction and its authoritative result. Nothing
here touches the database or the Flask app: callers load the records and
the crazy prediction validation state, and persist the returned ScoreCard
themselves (see app services). Scoring the same inputs twice always gives
the same card, which is what makes "recalculate all" safe to rerun.

Every rule awards whole points. A field the user left empty scores zero
for its category; only a missing or mismatched result is an error.
"""

from dataclasses import dataclass, field

from tipping.errors import NotFoundError, ValidationError
from tipping.scoring.categories import (
    NO_NEW_WINNERS,
    PODIUM_FIELDS,
    SACKING_MATCH_POLICY,
    SPRINT_FIELDS,
    RaceCategory,
    SackingPolicy,
    SeasonCategory,
)
from tipping.scoring.validation import ValidationState, crazy_point_verdict


@dataclass
class ScoreCard:
    """Per-category points plus the summed total"""

    per_category: dict = field(default_factory=dict)

    @property
    def total(self):
        return sum(self.per_category.values())

    def to_dict(self):
        return {
            "per_category": {
                category.value: points for category, points in self.per_category.items()
            },
            "total": self.total,
        }


def _positional_matches(predicted, actual):
    """1 point per index where both lists hold the same id"""
    if not predicted or not actual:
        return 0
    return sum(
        1
        for guess, truth in zip(predicted, actual)
        if guess is not None and guess == truth
    )


def _exact_match(predicted, actual):
    return 1 if predicted is not None and predicted == actual else 0


def score_sackings(predicted, actual, policy=SACKING_MATCH_POLICY):
    """Flat point for the sackings question

    An empty prediction never scores, whatever the result says.
    """
    predicted = set(predicted or [])
    actual = set(actual or [])
    if not predicted:
        return 0

    if policy is SackingPolicy.EXACT_SET:
        return 1 if predicted == actual else 0
    return 1 if predicted & actual else 0


def score_first_career_winners(predicted, actual):
    """1 point per predicted first-time winner who did win, or 1 point for
    correctly calling that nobody would"""
    predicted = list(predicted or [])
    actual = set(actual or [])

    points = sum(1 for driver_id in set(predicted) - {NO_NEW_WINNERS} if driver_id in actual)
    if NO_NEW_WINNERS in predicted and not actual:
        points += 1
    return points


def compare_grid_pairings(predicted, actual):
    """Number of driver/team pairings that match; informational, never scored"""
    if not predicted or not actual:
        return 0
    actual_pairs = {(pair.get("driver_id"), pair.get("team_id")) for pair in actual}
    return sum(
        1
        for pair in predicted
        if (pair.get("driver_id"), pair.get("team_id")) in actual_pairs
    )


def score_crazy_prediction(prediction, result, crazy_state):
    """Both gates: peer validation and the admin's "happened" mark"""
    if not (prediction.crazy_prediction or "").strip():
        return 0
    happened = prediction.id is not None and prediction.id in set(
        result.crazy_predictions_happened or []
    )
    verdict = crazy_point_verdict(crazy_state, happened)
    return 1 if verdict is ValidationState.ACCEPTED else 0


def score_season_prediction(prediction, result, crazy_state=None):
    """Score a season prediction against the season result

    Raises:
        NotFoundError: no result has been entered for the season yet
        ValidationError: prediction and result belong to different seasons
    """
    if result is None:
        raise NotFoundError(f"No season result entered for season {prediction.season_id}")
    if prediction.season_id != result.season_id:
        raise ValidationError(
            f"Season prediction {prediction.id} is for season {prediction.season_id}, "
            f"result is for season {result.season_id}"
        )

    card = ScoreCard()
    card.per_category[SeasonCategory.DRIVERS_CHAMPIONSHIP] = _positional_matches(
        prediction.drivers_championship_order, result.drivers_championship_order
    )
    card.per_category[SeasonCategory.CONSTRUCTORS_CHAMPIONSHIP] = _positional_matches(
        prediction.constructors_championship_order,
        result.constructors_championship_order,
    )
    card.per_category[SeasonCategory.SACKINGS] = score_sackings(
        prediction.mid_season_sackings, result.mid_season_sackings
    )
    card.per_category[SeasonCategory.NEW_TEAM_DUEL] = _exact_match(
        prediction.new_team_choice, result.new_team_winner
    )
    card.per_category[SeasonCategory.FIRST_CAREER_WINNERS] = score_first_career_winners(
        prediction.first_career_race_winners, result.first_career_race_winners
    )
    card.per_category[SeasonCategory.CRAZY_PREDICTION] = score_crazy_prediction(
        prediction, result, crazy_state
    )
    return card


def score_race_prediction(prediction, result, crazy_state=None):
    """Score a race prediction against the race result

    Raises:
        NotFoundError: no result has been entered for the race yet
        ValidationError: prediction and result belong to different races
    """
    if result is None:
        raise NotFoundError(f"No race result entered for race {prediction.race_id}")
    if prediction.race_id != result.race_id:
        raise ValidationError(
            f"Race prediction {prediction.id} is for race {prediction.race_id}, "
            f"result is for race {result.race_id}"
        )

    card = ScoreCard()
    card.per_category[RaceCategory.POLE_POSITION] = _exact_match(
        prediction.pole_position_driver_id, result.pole_position_driver_id
    )
    # Position-exact only: the right driver on the wrong step scores nothing
    card.per_category[RaceCategory.PODIUM] = sum(
        _exact_match(getattr(prediction, name), getattr(result, name))
        for name in PODIUM_FIELDS
    )
    card.per_category[RaceCategory.MIDFIELD_HERO] = _exact_match(
        prediction.midfield_hero_driver_id, result.midfield_hero_driver_id
    )

    for category, name in SPRINT_FIELDS.items():
        if result.has_sprint:
            card.per_category[category] = _exact_match(
                getattr(prediction, name), getattr(result, name)
            )
        else:
            card.per_category[category] = 0

    card.per_category[RaceCategory.CRAZY_PREDICTION] = score_crazy_prediction(
        prediction, result, crazy_state
    )
    return card
