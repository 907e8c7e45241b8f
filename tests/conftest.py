"""
Shared fixtures: a testing app on in-memory SQLite plus small factories.

HTTP tests must not hold an app context across requests (Flask-Login
caches the current user on ``g``), so ``app`` does not push one; tests that
talk to the database directly use ``app_ctx``.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from tipping import create_app, db  # noqa: E402
from tipping.models import (  # noqa: E402
    League,
    Race,
    RacePrediction,
    RaceResult,
    Season,
    SeasonPrediction,
    SeasonResult,
    User,
)

PASSWORD = "Password123"


def utcnow():
    """Naive UTC, the way datetimes come back from SQLite"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    def _make_user(username, is_admin=False, display_name=None, password=PASSWORD):
        user = User(username=username, is_admin=is_admin)
        user.set_display_name(display_name)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_season():
    def _make_season(year=2026, deadline=None, driver_count=3, constructor_count=2, active=True):
        season = Season.create_season(
            year,
            deadline or utcnow() + timedelta(days=30),
            driver_count=driver_count,
            constructor_count=constructor_count,
        )
        db.session.commit()
        if active:
            season.activate()
        return season

    return _make_season


@pytest.fixture
def make_race():
    def _make_race(season, round_number=1, fp1_start=None, sprint=False, name=None):
        race = Race(
            season_id=season.id,
            round_number=round_number,
            name=name or f"Grand Prix {round_number}",
            fp1_start=fp1_start or utcnow() + timedelta(days=7),
            race_date=(fp1_start or utcnow() + timedelta(days=7)) + timedelta(days=2),
            is_sprint_weekend=sprint,
        )
        db.session.add(race)
        db.session.commit()
        return race

    return _make_race


@pytest.fixture
def make_season_prediction():
    def _make(user, season, **fields):
        values = {
            "drivers_championship_order": ["verstappen", "norris", "leclerc"],
            "constructors_championship_order": ["mclaren", "ferrari"],
            "mid_season_sackings": [],
            "new_team_choice": "audi",
            "first_career_race_winners": [],
        }
        values.update(fields)
        prediction = SeasonPrediction(user_id=user.id, season_id=season.id, **values)
        db.session.add(prediction)
        db.session.commit()
        return prediction

    return _make


@pytest.fixture
def make_race_prediction():
    def _make(user, race, **fields):
        values = {
            "pole_position_driver_id": "verstappen",
            "podium_first_driver_id": "verstappen",
            "podium_second_driver_id": "norris",
            "podium_third_driver_id": "leclerc",
            "midfield_hero_driver_id": "albon",
        }
        values.update(fields)
        prediction = RacePrediction(user_id=user.id, race_id=race.id, **values)
        db.session.add(prediction)
        db.session.commit()
        return prediction

    return _make


@pytest.fixture
def enter_race_result():
    def _enter(race, admin, **fields):
        values = {
            "pole_position_driver_id": "verstappen",
            "podium_first_driver_id": "verstappen",
            "podium_second_driver_id": "norris",
            "podium_third_driver_id": "leclerc",
            "midfield_hero_driver_id": "albon",
            "crazy_predictions_happened": [],
        }
        values.update(fields)
        result = RaceResult.record(race, values, admin)
        db.session.commit()
        return result

    return _enter


@pytest.fixture
def enter_season_result():
    def _enter(season, admin, **fields):
        values = {
            "drivers_championship_order": ["verstappen", "norris", "leclerc"],
            "constructors_championship_order": ["mclaren", "ferrari"],
            "mid_season_sackings": [],
            "new_team_winner": "audi",
            "first_career_race_winners": [],
            "crazy_predictions_happened": [],
        }
        values.update(fields)
        result = SeasonResult.record(season, values, admin)
        db.session.commit()
        return result

    return _enter


@pytest.fixture
def make_league():
    def _make(name, creator, members=(), world=False):
        league = League(name=name, creator_id=creator.id, is_world_league=world)
        db.session.add(league)
        db.session.flush()
        # World leagues are joined explicitly, so their creator is not added
        for member in members if world else (creator, *members):
            league.add_member(member)
        db.session.commit()
        return league

    return _make


@pytest.fixture
def login(client):
    def _login(username, password=PASSWORD):
        return client.post("/auth/login", json={"username": username, "password": password})

    return _login
