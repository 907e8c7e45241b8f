#!/usr/bin/env python3
"""
F1 Tipping Management CLI

Command-line management for seasons, the race calendar, scores and users.
"""

import logging
from datetime import datetime

import click
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tipping import create_app, db
from tipping.models import League, Race, RacePrediction, Season, SeasonPrediction, User

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d"]


@click.group()
@click.option("--config", "config_name", default=None, help="Configuration name (FLASK_CONFIG)")
@click.pass_context
def cli(ctx, config_name):
    """F1 Tipping Management CLI"""
    if not current_app:
        app = create_app(config_name)
        ctx.with_resource(app.app_context())


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command()
@click.argument("year", type=int)
@click.option(
    "--deadline",
    type=click.DateTime(formats=DATETIME_FORMATS),
    help="Season prediction deadline in UTC (YYYY-MM-DD [HH:MM])",
)
@click.option("--drivers", default=22, show_default=True, help="Drivers on the grid")
@click.option("--constructors", default=11, show_default=True, help="Constructors on the grid")
@click.option("--activate", is_flag=True, help="Activate this season")
def create(year, deadline, drivers, constructors, activate):
    """Create a new season"""
    try:
        if Season.get_by_year(year):
            click.echo(f"Season {year} already exists!")
            return

        if not deadline:
            deadline = datetime(year, 3, 1)

        season = Season.create_season(
            year, deadline, driver_count=drivers, constructor_count=constructors
        )
        db.session.commit()
        click.echo(f"✅ Created season {year} (predictions close {deadline:%Y-%m-%d %H:%M} UTC)")

        if activate:
            season.activate()
            click.echo(f"✅ Activated season {year}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Season {year} already exists!")
        logging.error(f"Season creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating season: {str(e)}")
        logging.error(f"Season creation failed - SQL error: {e}")


@season.command()
@click.argument("year", type=int)
def activate(year):
    """Activate a season"""
    season = Season.get_by_year(year)
    if not season:
        click.echo(f"❌ Season {year} not found!")
        return

    season.activate()
    click.echo(f"✅ Activated season {year}")


@season.command("list")
def list_seasons():
    """List all seasons"""
    seasons = Season.query.order_by(Season.year.desc()).all()

    if not seasons:
        click.echo("No seasons found.")
        return

    click.echo("Seasons:")
    for s in seasons:
        status = "🟢 ACTIVE" if s.is_active else "⚪ Inactive"
        complete = "✅ Results in" if s.result else f"{s.races.count()} races"
        click.echo(f"  {s.year}: {status} - {complete}")


# Race Commands
@cli.group()
def race():
    """Race calendar commands"""
    pass


@race.command()
@click.argument("year", type=int)
@click.argument("round_number", type=int)
@click.argument("name")
@click.option(
    "--race-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    required=True,
    help="Race start in UTC",
)
@click.option(
    "--fp1",
    type=click.DateTime(formats=DATETIME_FORMATS),
    help="First practice start in UTC (race predictions close then)",
)
@click.option("--location", help="City, country")
@click.option("--sprint", is_flag=True, help="Sprint weekend")
def add(year, round_number, name, race_date, fp1, location, sprint):
    """Add or update a race of a season"""
    season = Season.get_by_year(year)
    if not season:
        click.echo(f"❌ Season {year} not found!")
        return

    race = Race.query.filter_by(season_id=season.id, round_number=round_number).first()
    created = race is None
    if created:
        race = Race(season_id=season.id, round_number=round_number)
        db.session.add(race)

    race.name = name
    race.race_date = race_date
    race.fp1_start = fp1
    race.location = location
    race.is_sprint_weekend = sprint
    db.session.commit()

    click.echo(f"✅ {'Added' if created else 'Updated'} R{round_number} {name}")


# Data Sync Commands
@cli.group()
def sync():
    """External data sync commands"""
    pass


@sync.command()
@click.argument("year", type=int)
def calendar(year):
    """Sync a season's race calendar from the Jolpica API"""
    from tipping.utils.data_sync import DataSync

    click.echo(f"Syncing {year} race calendar...")
    success, message = DataSync().sync_calendar(year)
    click.echo(f"{'✅' if success else '❌'} {message}")


# Scoring Commands
@cli.group()
def scores():
    """Scoring commands"""
    pass


@scores.command()
def recalculate():
    """Rescore every prediction that has a result"""
    from tipping.services.scoring_service import recalculate_all

    report = recalculate_all()
    click.echo(
        f"✅ Rescored {report.rescored}, skipped {report.skipped} without results, "
        f"{len(report.failures)} failed"
    )
    for failure in report.failures:
        click.echo(
            f"  ❌ {failure['prediction_type']} prediction {failure['prediction_id']}: "
            f"{failure['error']}"
        )


# User Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("username")
@click.argument("password")
@click.option("--display-name", help="Display name")
def create_admin(username, password, display_name=None):
    """Create an admin user, or promote an existing one"""
    existing = User.query.filter_by(username=username).first()
    if existing:
        existing.is_admin = True
        db.session.commit()
        click.echo(f"✅ Promoted '{username}' to admin")
        return

    user = User(username=username, is_active=True, is_admin=True)
    user.set_display_name(display_name)
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    click.echo(f"✅ Created admin user '{username}'")


@user.command("list")
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = " (admin)" if u.is_admin else ""
        click.echo(f"  {status} {u.username} - {u.full_name}{role}")


# League Commands
@cli.group()
def league():
    """League commands"""
    pass


@league.command("create-world")
@click.argument("name", default="World League")
@click.option("--creator", help="Username recorded as the creator")
def create_world(name, creator):
    """Create the world league every user may join"""
    if League.get_world_league():
        click.echo("❌ An active world league already exists")
        return

    creator_user = None
    if creator:
        creator_user = User.query.filter_by(username=creator).first()
        if not creator_user:
            click.echo(f"❌ User '{creator}' not found")
            return

    world = League(
        name=name,
        is_world_league=True,
        creator_id=creator_user.id if creator_user else None,
    )
    db.session.add(world)
    db.session.commit()
    click.echo(f"✅ Created world league '{name}' (invite code {world.invite_code})")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
def init_db():
    """Initialize database tables"""
    db.create_all()
    click.echo("✅ Database tables created successfully!")


@db_cmd.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
def reset(yes):
    """⚠️  DANGER: Drop and recreate all tables"""
    if not yes and not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    db.drop_all()
    db.create_all()
    click.echo("✅ Database reset successfully!")


# Info Commands
@cli.command()
def status():
    """Show application status"""
    click.echo("🏎️  F1 Tipping Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    current_season = Season.get_current_season()
    if current_season:
        click.echo(f"✅ Current Season: {current_season.year}")
    else:
        click.echo("⚠️  Current Season: None active")

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    league_count = League.query.filter_by(is_active=True).count()
    click.echo(f"🏆 Active Leagues: {league_count}")

    from tipping.utils.cache_utils import get_cache_stats

    stats = get_cache_stats()
    click.echo(
        f"🗄️  Cache: {stats['type']} (default {stats['timeout']}s, "
        f"leaderboards {stats['leaderboard_timeout']}s)"
    )

    if current_season:
        races = current_season.races.count()
        with_results = sum(1 for r in current_season.get_races() if r.result is not None)
        click.echo(f"🏁 Races: {with_results}/{races} with results")

        season_predictions = SeasonPrediction.query.filter_by(season_id=current_season.id)
        unjudged = (
            RacePrediction.query.join(Race)
            .filter(Race.season_id == current_season.id, RacePrediction.points_earned.is_(None))
            .count()
        )
        click.echo(
            f"📝 Season predictions: {season_predictions.count()}, "
            f"unjudged race predictions: {unjudged}"
        )


if __name__ == "__main__":
    cli()
