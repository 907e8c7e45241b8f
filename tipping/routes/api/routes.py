import logging
from io import BytesIO

from flask import jsonify, request, send_file
from flask_login import current_user, login_required
from werkzeug.utils import secure_filename

from tipping import db, limiter
from tipping.errors import AuthorizationError, NotFoundError, ValidationError
from tipping.forms import form_errors
from tipping.forms.leagues import CreateLeagueForm, JoinLeagueForm
from tipping.forms.predictions import (
    RacePredictionForm,
    SeasonPredictionForm,
    ValidationVoteForm,
)
from tipping.models import (
    CrazyPredictionValidation,
    League,
    LeagueMember,
    Race,
    RacePrediction,
    Season,
    SeasonPrediction,
    User,
)
from tipping.routes.api import bp
from tipping.services import export_service, scoring_service

logger = logging.getLogger(__name__)


def get_season_or_404(year):
    season = Season.get_by_year(year)
    if season is None:
        raise NotFoundError(f"Season {year} not found")
    return season


def get_race_or_404(race_id):
    race = db.session.get(Race, race_id)
    if race is None:
        raise NotFoundError("Race not found")
    return race


def get_league_or_404(league_id):
    league = db.session.get(League, league_id)
    if league is None or not league.is_active:
        raise NotFoundError("League not found")
    return league


def requested_season_year():
    """?season=<year>, defaulting to the active season"""
    year = request.args.get("season", type=int)
    if year is None:
        current_season = Season.get_current_season()
        if current_season is None:
            raise ValidationError("No season specified and no active season")
        year = current_season.year
    return year


def filter_by_league(query, user_column):
    """Restrict a prediction query to the members of ?league_id="""
    league_id = request.args.get("league_id", type=int)
    if league_id is None:
        return query
    league = get_league_or_404(league_id)
    return query.filter(user_column.in_(league.get_member_ids()))


def apply_limit(query):
    limit = request.args.get("limit", type=int)
    if limit and limit > 0:
        query = query.limit(limit)
    return query


# Seasons and races


@bp.route("/seasons")
def seasons():
    """Get all seasons"""
    seasons = Season.query.order_by(Season.year.desc()).all()
    return jsonify([season.to_dict() for season in seasons])


@bp.route("/seasons/current")
def current_season():
    season = Season.get_current_season()
    if season is None:
        raise NotFoundError("No active season")
    return jsonify(season.to_dict())


@bp.route("/seasons/<int:year>/races")
def season_races(year):
    season = get_season_or_404(year)
    return jsonify([race.to_dict() for race in season.get_races()])


# Season predictions


@bp.route("/seasons/<int:year>/prediction", methods=["PUT"])
@login_required
@limiter.limit("30 per minute")
def submit_season_prediction(year):
    season = get_season_or_404(year)

    form = SeasonPredictionForm(season)
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid season prediction")

    prediction, created = SeasonPrediction.submit(current_user, season, form.prediction_data())
    db.session.commit()

    logger.info(
        f"User {current_user.id} {'created' if created else 'updated'} "
        f"season prediction for {season.year}"
    )
    return jsonify(prediction.to_dict()), 201 if created else 200


@bp.route("/seasons/<int:year>/prediction")
@login_required
def my_season_prediction(year):
    season = get_season_or_404(year)
    prediction = SeasonPrediction.query.filter_by(
        user_id=current_user.id, season_id=season.id
    ).first()
    if prediction is None:
        raise NotFoundError("No season prediction submitted")
    return jsonify(prediction.to_dict())


@bp.route("/seasons/<int:year>/predictions")
@login_required
def season_predictions(year):
    season = get_season_or_404(year)
    query = (
        SeasonPrediction.query.join(User)
        .filter(SeasonPrediction.season_id == season.id)
        .order_by(User.display_name, User.username)
    )
    query = apply_limit(filter_by_league(query, SeasonPrediction.user_id))
    return jsonify([prediction.to_dict(include_owner=True) for prediction in query.all()])


# Race predictions


@bp.route("/races/<int:race_id>/prediction", methods=["PUT"])
@login_required
@limiter.limit("30 per minute")
def submit_race_prediction(race_id):
    race = get_race_or_404(race_id)

    form = RacePredictionForm(race)
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid race prediction")

    prediction, created = RacePrediction.submit(current_user, race, form.prediction_data())
    db.session.commit()

    logger.info(
        f"User {current_user.id} {'created' if created else 'updated'} "
        f"race prediction for {race.name}"
    )
    return jsonify(prediction.to_dict()), 201 if created else 200


@bp.route("/races/<int:race_id>/prediction")
@login_required
def my_race_prediction(race_id):
    race = get_race_or_404(race_id)
    prediction = RacePrediction.query.filter_by(user_id=current_user.id, race_id=race.id).first()
    if prediction is None:
        raise NotFoundError("No race prediction submitted")
    return jsonify(prediction.to_dict())


@bp.route("/races/<int:race_id>/predictions")
@login_required
def race_predictions(race_id):
    race = get_race_or_404(race_id)
    query = (
        RacePrediction.query.join(User)
        .filter(RacePrediction.race_id == race.id)
        .order_by(User.display_name, User.username)
    )
    query = apply_limit(filter_by_league(query, RacePrediction.user_id))
    return jsonify([prediction.to_dict(include_owner=True) for prediction in query.all()])


# Crazy prediction validation


@bp.route("/crazy-predictions/validate", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def validate_crazy_prediction():
    form = ValidationVoteForm()
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid vote")

    validation, created = scoring_service.cast_vote(
        current_user,
        form.prediction_type.data,
        form.prediction_id.data,
        form.is_validated.data,
    )
    prediction = scoring_service.get_prediction(form.prediction_type.data, form.prediction_id.data)
    data = validation.to_dict()
    data["validation_state"] = prediction.crazy_validation_state().value
    return jsonify(data), 201 if created else 200


@bp.route("/crazy-predictions/pending")
@login_required
def pending_crazy_predictions():
    season_year = request.args.get("season", type=int)
    return jsonify(scoring_service.pending_validations(current_user, season_year))


@bp.route("/crazy-predictions/<prediction_type>/<int:prediction_id>/validations")
@login_required
def crazy_prediction_validations(prediction_type, prediction_id):
    prediction = scoring_service.get_crazy_prediction(prediction_type, prediction_id)
    validations = CrazyPredictionValidation.for_prediction(
        prediction.prediction_type, prediction.id
    )
    return jsonify(
        {
            "prediction": scoring_service.crazy_prediction_summary(prediction, viewer=current_user),
            "validations": [validation.to_dict() for validation in reversed(validations)],
        }
    )


# Leagues


@bp.route("/leagues")
@login_required
def leagues():
    """Get user's leagues, default league first"""
    return jsonify(
        [
            membership.league.to_dict(is_default=membership.is_default)
            for membership in current_user.get_memberships()
        ]
    )


@bp.route("/leagues/default")
@login_required
def default_league():
    membership = LeagueMember.get_default(current_user.id)
    if membership is None or not membership.league.is_active:
        raise NotFoundError("No default league")
    return jsonify(membership.league.to_dict(is_default=True))


@bp.route("/leagues", methods=["POST"])
@login_required
@limiter.limit("10 per hour")
def create_league():
    form = CreateLeagueForm()
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid league")

    league = League(
        name=form.name.data.strip(),
        description=(form.description.data or "").strip() or None,
        max_members=form.max_members.data or 100,
        creator_id=current_user.id,
    )
    db.session.add(league)
    db.session.flush()
    league.add_member(current_user)
    db.session.commit()
    scoring_service.membership_changed(league)

    logger.info(f"User {current_user.id} created league {league.id}")
    return jsonify(league.to_dict()), 201


@bp.route("/leagues/join", methods=["POST"])
@login_required
@limiter.limit("20 per hour")
def join_league():
    form = JoinLeagueForm()
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid invite code")

    league = League.get_by_invite_code(form.invite_code.data)
    if league is None or not league.is_active:
        raise NotFoundError("No league with that invite code")

    success, message = league.add_member(current_user)
    if not success:
        raise ValidationError(message)
    db.session.commit()
    scoring_service.membership_changed(league)

    return jsonify({"message": message, "league": league.to_dict()})


@bp.route("/leagues/world/join", methods=["POST"])
@login_required
def join_world_league():
    league = League.get_world_league()
    if league is None:
        raise NotFoundError("World league not found")

    success, message = league.add_member(current_user)
    if not success:
        raise ValidationError(message)
    db.session.commit()
    scoring_service.membership_changed(league)

    return jsonify({"message": message, "league": league.to_dict()})


@bp.route("/leagues/<int:league_id>/default", methods=["POST"])
@login_required
def set_default_league(league_id):
    league = get_league_or_404(league_id)
    if not current_user.set_default_league(league):
        raise NotFoundError("You are not a member of this league")
    db.session.commit()

    return jsonify({"message": "Default league updated", "league": league.to_dict(is_default=True)})


@bp.route("/leagues/<int:league_id>/leave", methods=["POST"])
@login_required
def leave_league(league_id):
    league = get_league_or_404(league_id)
    if league.is_world_league:
        raise ValidationError("You cannot leave a world league")

    success, message = league.remove_member(current_user.id)
    if not success:
        raise ValidationError(message)
    db.session.commit()
    scoring_service.membership_changed(league)

    return jsonify({"message": message})


def get_member_league_or_403(league_id):
    league = get_league_or_404(league_id)
    if not league.is_user_member(current_user.id):
        raise AuthorizationError("Not a member of this league")
    return league


@bp.route("/leagues/<int:league_id>/leaderboard")
@login_required
def league_leaderboard(league_id):
    league = get_member_league_or_403(league_id)

    season_year = requested_season_year()
    return jsonify(
        {
            "league": league.to_dict(),
            "season": season_year,
            "leaderboard": scoring_service.league_leaderboard(league.id, season_year),
        }
    )


@bp.route("/leagues/<int:league_id>/leaderboard/export")
@login_required
@limiter.limit("10 per minute")
def export_league_leaderboard(league_id):
    league = get_member_league_or_403(league_id)
    season_year = requested_season_year()

    content = export_service.export_leaderboard(league, season_year)
    filename = f"f1-tipping-{secure_filename(league.name) or 'league'}-{season_year}.xlsx"
    return send_file(
        BytesIO(content),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename,
    )


@bp.route("/leagues/<int:league_id>/users/<int:user_id>/breakdown")
@login_required
def user_breakdown(league_id, user_id):
    league = get_member_league_or_403(league_id)
    if user_id not in league.get_member_ids():
        raise NotFoundError("User is not in this league")

    return jsonify(scoring_service.user_breakdown(user_id, requested_season_year()))
