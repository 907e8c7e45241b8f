"""
Timezone utility functions for the F1 tipping application

SQLite hands datetimes back without tzinfo; every stored datetime is UTC,
so naive values are treated as UTC before comparing them with "now".
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Attach UTC to naive datetimes, convert aware ones"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(get_app_timezone())


def has_passed(deadline, now=None):
    """True once ``now`` (default: current UTC time) is past the deadline"""
    if deadline is None:
        return False
    now = ensure_utc(now) if now is not None else get_utc_time()
    return now > ensure_utc(deadline)


def format_deadline(dt, format_str="%a %d %b at %H:%M"):
    """Format a deadline in the application's timezone"""
    if dt is None:
        return "TBD"
    return convert_to_app_timezone(dt).strftime(format_str)
