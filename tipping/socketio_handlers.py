"""
SocketIO Event Handlers for Real-time Leaderboards

Clients connect to the /leagues namespace, join the room of each league
they follow and get a ``leaderboard_updated`` event whenever scores move.
"""

import logging
from datetime import datetime, timezone

from flask import request
from flask_login import current_user
from flask_socketio import disconnect, emit, join_room, leave_room

from tipping import db, socketio
from tipping.models import League

logger = logging.getLogger(__name__)

NAMESPACE = "/leagues"


def league_room(league_id):
    return f"league_{league_id}"


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    """Only logged-in users may follow leagues"""
    if not current_user.is_authenticated:
        disconnect()
        return False

    logger.info(f"Client connected to {NAMESPACE}: {request.sid} (user: {current_user.id})")


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect():
    user_id = current_user.id if current_user.is_authenticated else None
    logger.info(f"Client disconnected from {NAMESPACE}: {request.sid} (user: {user_id})")


@socketio.on("join_league", namespace=NAMESPACE)
def on_join_league(data):
    """Join a league room; members only"""
    try:
        league_id = int((data or {}).get("league_id"))
    except (TypeError, ValueError):
        emit("error", {"error": "league_id is required"})
        return

    league = db.session.get(League, league_id)
    if not league or not league.is_active or not league.is_user_member(current_user.id):
        emit("error", {"error": "Not a member of this league"})
        return

    join_room(league_room(league_id))
    emit("joined_league", {"league_id": league_id})
    logger.debug(f"Client {request.sid} joined {league_room(league_id)}")


@socketio.on("leave_league", namespace=NAMESPACE)
def on_leave_league(data):
    try:
        league_id = int((data or {}).get("league_id"))
    except (TypeError, ValueError):
        return

    leave_room(league_room(league_id))
    logger.debug(f"Client {request.sid} left {league_room(league_id)}")


def broadcast_leaderboard_update(season_year=None, reason="rescored", league_ids=None):
    """Tell league rooms that standings changed; every active league by default"""
    try:
        payload = {
            "season": season_year,
            "reason": reason,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if league_ids is None:
            league_ids = [
                league_id
                for (league_id,) in db.session.query(League.id).filter_by(is_active=True).all()
            ]
        for league_id in league_ids:
            socketio.emit(
                "leaderboard_updated",
                dict(payload, league_id=league_id),
                room=league_room(league_id),
                namespace=NAMESPACE,
            )

        logger.debug(f"Broadcasted leaderboard update to {len(league_ids)} leagues")

    except Exception as e:
        logger.error(f"Error broadcasting leaderboard update: {e}")
