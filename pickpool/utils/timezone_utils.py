"""
Timezone utility functions for the spread pool

Week windows are stored as naive UTC; they are entered and displayed in the
configured pool timezone.
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


def utc_now():
    """Current time as naive UTC, the form stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(get_app_timezone())


def local_to_utc_naive(dt):
    """Interpret a naive datetime in the pool timezone and store it as naive UTC"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = get_app_timezone().localize(dt)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def format_game_time(dt, format_str="%a %m/%d at %I:%M %p"):
    """Format a kickoff time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt).strftime(format_str)
