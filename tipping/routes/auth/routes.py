import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from tipping import db, limiter
from tipping.errors import AuthorizationError
from tipping.forms import form_errors
from tipping.forms.auth import LoginForm, RegistrationForm
from tipping.models import User
from tipping.routes.auth import bp

logger = logging.getLogger(__name__)


@bp.route("/csrf-token")
def csrf_token():
    """Token for the X-CSRFToken header of state-changing requests"""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise form_errors(form)

    user = User.query.filter_by(username=form.username.data).first()
    if not user or not user.check_password(form.password.data):
        logger.info(f"Failed login for {form.username.data}")
        return jsonify({"error": "Invalid username or password"}), 401

    if not user.is_active:
        raise AuthorizationError("Your account has been deactivated")

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()
    return jsonify({"user": user.to_dict()})


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    form = RegistrationForm()
    if not form.validate_on_submit():
        raise form_errors(form, "Registration failed")

    user = User(username=form.username.data)
    user.set_display_name(form.display_name.data or None)
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    logger.info(f"New user registered: {user.username}")

    login_user(user)
    return jsonify({"user": user.to_dict()}), 201


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@bp.route("/me")
@login_required
def me():
    data = current_user.to_dict()
    data["leagues"] = [league.to_dict() for league in current_user.get_leagues()]
    return jsonify(data)
