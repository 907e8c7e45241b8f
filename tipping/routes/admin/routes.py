import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from tipping import db
from tipping.errors import AuthorizationError, NotFoundError
from tipping.forms import form_errors
from tipping.forms.results import OverrideForm, RaceResultForm, SeasonResultForm
from tipping.models import AdminAction, Race, RaceResult, Season, SeasonResult
from tipping.routes.admin import bp
from tipping.services import scoring_service

logger = logging.getLogger(__name__)


def admin_required(f):
    """Site admins only"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            raise AuthorizationError("Admin access required")
        return f(*args, **kwargs)

    return decorated_function


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


@bp.route("/seasons/<int:year>/results", methods=["PUT"])
@admin_required
def enter_season_results(year):
    """Enter or correct the season result, then rescore the season"""
    season = get_season_or_404(year)

    form = SeasonResultForm(season)
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid season result")

    result = SeasonResult.record(season, form.result_data(), current_user)
    db.session.commit()

    report = scoring_service.rescore_season(season)
    AdminAction.log_season_result(current_user, season, report.rescored)
    db.session.commit()

    logger.info(f"Admin {current_user.id} entered season results for {season.year}")
    return jsonify({"result": result.to_dict(), "rescore": report.to_dict()})


@bp.route("/seasons/<int:year>/results")
@admin_required
def season_results(year):
    season = get_season_or_404(year)
    if season.result is None:
        raise NotFoundError(f"No results entered for {season.year}")
    return jsonify(season.result.to_dict())


@bp.route("/races/<int:race_id>/results", methods=["PUT"])
@admin_required
def enter_race_results(race_id):
    """Enter or correct a race result, then rescore the race"""
    race = get_race_or_404(race_id)

    form = RaceResultForm(race)
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid race result")

    result = RaceResult.record(race, form.result_data(), current_user)
    db.session.commit()

    report = scoring_service.rescore_race(race)
    AdminAction.log_race_result(current_user, race, report.rescored)
    db.session.commit()

    logger.info(f"Admin {current_user.id} entered results for race {race.id}")
    return jsonify({"result": result.to_dict(), "rescore": report.to_dict()})


@bp.route("/races/<int:race_id>/results")
@admin_required
def race_results(race_id):
    race = get_race_or_404(race_id)
    if race.result is None:
        raise NotFoundError(f"No results entered for {race.name}")
    return jsonify(race.result.to_dict())


@bp.route("/crazy-predictions/<prediction_type>/<int:prediction_id>/override", methods=["PUT"])
@admin_required
def override_crazy_prediction(prediction_type, prediction_id):
    form = OverrideForm()
    if not form.validate_on_submit():
        raise form_errors(form, "Invalid override")

    prediction = scoring_service.set_override(
        current_user, prediction_type, prediction_id, form.is_accepted.data
    )
    return jsonify(scoring_service.crazy_prediction_summary(prediction))


@bp.route("/recalculate", methods=["POST"])
@admin_required
def recalculate():
    report = scoring_service.recalculate_all()
    AdminAction.log_recalculation(current_user, report)
    db.session.commit()
    return jsonify(report.to_dict())


@bp.route("/actions")
@admin_required
def admin_actions():
    """Audit log, newest first"""
    limit = min(request.args.get("limit", 100, type=int), 500)
    actions = AdminAction.query.order_by(AdminAction.created_at.desc()).limit(limit).all()
    return jsonify([action.to_dict() for action in actions])
