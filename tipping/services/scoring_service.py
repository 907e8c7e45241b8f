"""
Scoring Service for the F1 tipping competition

Persistence side of scoring: loads predictions, their results and the
crazy prediction votes, runs the pure engine and stores points_earned /
score_breakdown. Also owns vote casting, admin overrides and the league
standings built from the stored totals.

Every function here commits per prediction, so a failure part way through
a batch never loses the rows already rescored.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError

from tipping import db
from tipping.errors import AuthorizationError, NotFoundError, TippingError, ValidationError
from tipping.models import (
    AdminAction,
    CrazyPredictionOverride,
    CrazyPredictionValidation,
    Race,
    RacePrediction,
    Season,
    SeasonPrediction,
    User,
)
from tipping.scoring.categories import PredictionType
from tipping.scoring.standings import build_leaderboard
from tipping.utils.cache_utils import cached_query, invalidate_leaderboard_cache
from tipping.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


@dataclass
class RecalculationReport:
    rescored: int = 0
    skipped: int = 0
    failures: list = field(default_factory=list)

    def record_failure(self, prediction, error):
        self.failures.append(
            {
                "prediction_type": prediction.prediction_type.value,
                "prediction_id": prediction.id,
                "error": str(error),
            }
        )

    def to_dict(self):
        return {
            "rescored": self.rescored,
            "skipped": self.skipped,
            "failures": list(self.failures),
        }


def _season_year_of(prediction):
    if prediction.prediction_type is PredictionType.SEASON:
        return prediction.season.year
    return prediction.race.season.year


def scores_changed(season_year=None, reason="rescored"):
    """Drop cached leaderboards and notify connected clients"""
    from tipping.socketio_handlers import broadcast_leaderboard_update

    invalidate_leaderboard_cache()
    broadcast_leaderboard_update(season_year, reason=reason)


def membership_changed(league):
    """A user joined or left ``league``: its cached tables are stale"""
    from tipping.socketio_handlers import broadcast_leaderboard_update

    invalidate_leaderboard_cache()
    broadcast_leaderboard_update(reason="membership", league_ids=[league.id])


def _rescore_into(report, prediction):
    """Rescore one prediction and commit it; outcome goes into the report"""
    try:
        card = prediction.update_score()
        db.session.commit()
    except NotFoundError:
        # No result yet: stays unjudged
        db.session.rollback()
        report.skipped += 1
        return None
    except Exception as e:
        db.session.rollback()
        logger.error(
            f"Failed to rescore {prediction.prediction_type.value} prediction "
            f"{prediction.id}: {e}"
        )
        report.record_failure(prediction, e)
        return None

    report.rescored += 1
    logger.debug(
        f"Rescored {prediction.prediction_type.value} prediction {prediction.id}: "
        f"{card.total} points"
    )
    return card


def rescore_prediction(prediction, notify=True):
    """Rescore a single prediction if its result exists

    Returns the ScoreCard, or None when the result is not entered yet.
    """
    report = RecalculationReport()
    card = _rescore_into(report, prediction)
    if report.failures:
        raise TippingError(report.failures[0]["error"])
    if card is not None and notify:
        scores_changed(_season_year_of(prediction))
    return card


def rescore_season(season, notify=True):
    """Rescore every season prediction of one season"""
    report = RecalculationReport()
    for prediction in season.predictions.all():
        _rescore_into(report, prediction)

    logger.info(
        f"Season {season.year} rescored: {report.rescored} rescored, "
        f"{report.skipped} skipped, {len(report.failures)} failed"
    )
    if notify:
        scores_changed(season.year)
    return report


def rescore_race(race, notify=True):
    """Rescore every prediction of one race"""
    report = RecalculationReport()
    for prediction in race.predictions.all():
        _rescore_into(report, prediction)

    logger.info(
        f"{race.name} rescored: {report.rescored} rescored, "
        f"{report.skipped} skipped, {len(report.failures)} failed"
    )
    if notify:
        scores_changed(race.season.year)
    return report


def recalculate_all():
    """Rescore every stored prediction that has a result

    Safe to rerun: the engine is deterministic, so a second pass writes the
    same points. Per-record failures are collected, never raised.
    """
    report = RecalculationReport()

    for prediction in SeasonPrediction.query.order_by(SeasonPrediction.id).all():
        _rescore_into(report, prediction)
    for prediction in RacePrediction.query.order_by(RacePrediction.id).all():
        _rescore_into(report, prediction)

    logger.info(
        f"Recalculation complete: {report.rescored} rescored, "
        f"{report.skipped} skipped, {len(report.failures)} failed"
    )
    scores_changed(reason="recalculated")
    return report


# Crazy prediction validation


def parse_prediction_type(value):
    try:
        return PredictionType(value)
    except ValueError:
        raise ValidationError(
            "Invalid prediction type",
            errors={"prediction_type": ["Must be 'season' or 'race'"]},
        )


def get_prediction(prediction_type, prediction_id):
    """Load a season or race prediction by type and id"""
    prediction_type = parse_prediction_type(prediction_type)
    model = SeasonPrediction if prediction_type is PredictionType.SEASON else RacePrediction
    prediction = db.session.get(model, prediction_id)
    if prediction is None:
        raise NotFoundError(f"{prediction_type.value.capitalize()} prediction not found")
    return prediction


def get_crazy_prediction(prediction_type, prediction_id):
    prediction = get_prediction(prediction_type, prediction_id)
    if not (prediction.crazy_prediction or "").strip():
        raise NotFoundError("This prediction has no crazy prediction")
    return prediction


def cast_vote(validator, prediction_type, prediction_id, accepted):
    """Record or change a peer's vote on a crazy prediction

    Returns (validation row, created flag).
    """
    prediction = get_crazy_prediction(prediction_type, prediction_id)
    if prediction.user_id == validator.id:
        raise AuthorizationError("Cannot validate your own prediction")

    type_value = prediction.prediction_type.value
    validation = CrazyPredictionValidation.query.filter_by(
        validator_user_id=validator.id,
        prediction_type=type_value,
        prediction_id=prediction.id,
    ).first()
    created = validation is None

    if created:
        validation = CrazyPredictionValidation(
            validator_user_id=validator.id,
            prediction_type=type_value,
            prediction_id=prediction.id,
            is_validated=bool(accepted),
        )
        db.session.add(validation)
    else:
        validation.is_validated = bool(accepted)
        validation.validated_at = get_utc_time()

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted the same vote first; update it instead
        db.session.rollback()
        created = False
        validation = CrazyPredictionValidation.query.filter_by(
            validator_user_id=validator.id,
            prediction_type=type_value,
            prediction_id=prediction.id,
        ).one()
        validation.is_validated = bool(accepted)
        validation.validated_at = get_utc_time()
        db.session.commit()

    logger.info(
        f"User {validator.id} {'accepted' if accepted else 'rejected'} "
        f"{type_value} crazy prediction {prediction.id}"
    )

    rescore_prediction(prediction)
    return validation, created


def set_override(admin, prediction_type, prediction_id, is_accepted):
    """Force (True/False) or clear (None) the validation of a crazy prediction"""
    prediction = get_crazy_prediction(prediction_type, prediction_id)
    override = CrazyPredictionOverride.get(prediction.prediction_type, prediction.id)

    if is_accepted is None:
        if override:
            db.session.delete(override)
    elif override:
        override.is_accepted = bool(is_accepted)
        override.admin_user_id = admin.id
    else:
        db.session.add(
            CrazyPredictionOverride(
                prediction_type=prediction.prediction_type.value,
                prediction_id=prediction.id,
                is_accepted=bool(is_accepted),
                admin_user_id=admin.id,
            )
        )

    AdminAction.log_crazy_override(admin, prediction.prediction_type, prediction.id, is_accepted)
    db.session.commit()

    rescore_prediction(prediction)
    return prediction


def crazy_prediction_summary(prediction, viewer=None):
    """Crazy prediction with its votes and current validation state"""
    votes = CrazyPredictionValidation.for_prediction(prediction.prediction_type, prediction.id)
    data = {
        "prediction_type": prediction.prediction_type.value,
        "prediction_id": prediction.id,
        "user_id": prediction.user_id,
        "display_name": prediction.user.full_name,
        "crazy_prediction": prediction.crazy_prediction,
        "validation_state": prediction.crazy_validation_state().value,
        "accept_count": sum(1 for vote in votes if vote.is_validated),
        "reject_count": sum(1 for vote in votes if not vote.is_validated),
    }
    if prediction.prediction_type is PredictionType.SEASON:
        data["season"] = prediction.season.year
    else:
        data["season"] = prediction.race.season.year
        data["race_id"] = prediction.race_id
        data["race_name"] = prediction.race.name
        data["round_number"] = prediction.race.round_number
    if viewer is not None:
        own_vote = next((vote for vote in votes if vote.validator_user_id == viewer.id), None)
        data["already_validated"] = own_vote is not None
        data["my_vote"] = own_vote.is_validated if own_vote else None
    return data


def pending_validations(user, season_year=None):
    """Crazy predictions by other users that ``user`` may vote on"""
    season_query = SeasonPrediction.query.filter(
        SeasonPrediction.crazy_prediction.isnot(None),
        SeasonPrediction.crazy_prediction != "",
        SeasonPrediction.user_id != user.id,
    )
    race_query = RacePrediction.query.join(Race).filter(
        RacePrediction.crazy_prediction.isnot(None),
        RacePrediction.crazy_prediction != "",
        RacePrediction.user_id != user.id,
    )
    if season_year is not None:
        season_query = season_query.join(Season).filter(Season.year == season_year)
        race_query = race_query.join(Season, Race.season_id == Season.id).filter(
            Season.year == season_year
        )

    predictions = season_query.order_by(SeasonPrediction.id).all()
    predictions += race_query.order_by(Race.round_number, RacePrediction.id).all()
    return [crazy_prediction_summary(prediction, viewer=user) for prediction in predictions]


# Standings


def get_season(season_year):
    season = Season.get_by_year(season_year)
    if season is None:
        raise NotFoundError(f"Season {season_year} not found")
    return season


def compute_leaderboard(league_member_ids, season_year):
    """Ranked LeaderboardEntry list for the given users in one season"""
    season = get_season(season_year)
    member_ids = list(league_member_ids)
    if not member_ids:
        return []

    users = User.query.filter(User.id.in_(member_ids)).all()
    members = [(user.id, user.full_name) for user in users]

    season_totals = dict(
        db.session.query(SeasonPrediction.user_id, SeasonPrediction.points_earned)
        .filter(
            SeasonPrediction.season_id == season.id,
            SeasonPrediction.user_id.in_(member_ids),
        )
        .all()
    )

    race_totals = {}
    rows = (
        db.session.query(RacePrediction.user_id, RacePrediction.points_earned)
        .join(Race)
        .filter(Race.season_id == season.id, RacePrediction.user_id.in_(member_ids))
        .all()
    )
    for user_id, points in rows:
        race_totals.setdefault(user_id, []).append(points)

    return build_leaderboard(members, season_totals, race_totals)


@cached_query("leaderboard")
def league_leaderboard(league_id, season_year):
    """Cached, serialised leaderboard of one league"""
    from tipping.models import League

    league = db.session.get(League, league_id)
    if league is None:
        raise NotFoundError("League not found")
    return [entry.to_dict() for entry in league.get_leaderboard(season_year)]


def user_breakdown(user_id, season_year):
    """Per-prediction points of one user in one season"""
    from tipping.scoring.engine import compare_grid_pairings

    season = get_season(season_year)
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    season_prediction = SeasonPrediction.query.filter_by(
        user_id=user.id, season_id=season.id
    ).first()
    season_data = None
    if season_prediction:
        season_data = {
            "prediction_id": season_prediction.id,
            "points_earned": season_prediction.points_earned,
            "score_breakdown": season_prediction.score_breakdown,
        }
        if season.result is not None:
            season_data["grid_matches"] = {
                "2027": compare_grid_pairings(
                    season_prediction.grid_2027, season.result.actual_grid_2027
                ),
                "2028": compare_grid_pairings(
                    season_prediction.grid_2028, season.result.actual_grid_2028
                ),
            }

    races = []
    predictions = (
        RacePrediction.query.join(Race)
        .filter(RacePrediction.user_id == user.id, Race.season_id == season.id)
        .order_by(Race.round_number)
        .all()
    )
    for prediction in predictions:
        races.append(
            {
                "prediction_id": prediction.id,
                "race_id": prediction.race_id,
                "race_name": prediction.race.name,
                "round_number": prediction.race.round_number,
                "points_earned": prediction.points_earned,
                "score_breakdown": prediction.score_breakdown,
            }
        )

    season_points = (season_prediction.points_earned or 0) if season_prediction else 0
    race_points = sum(race["points_earned"] or 0 for race in races)
    return {
        "user_id": user.id,
        "display_name": user.full_name,
        "season": season.year,
        "season_prediction": season_data,
        "races": races,
        "season_points": season_points,
        "race_points": race_points,
        "total_points": season_points + race_points,
    }
