from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo
from flask import current_app

DEFAULT_TIMEZONE = 'America/Louisville'


def utcnow():
    """Naive UTC now; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt=None):
    dt = dt or utcnow()
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def app_timezone():
    try:
        name = current_app.config.get('APP_TIMEZONE', DEFAULT_TIMEZONE)
    except RuntimeError:
        name = DEFAULT_TIMEZONE
    return ZoneInfo(name)


def localize_naive_datetime(dt, tz=None):
    """
    Interpret a naive local datetime in ``tz`` (default: the app timezone)
    and convert it to naive UTC. Aware datetimes are converted as-is.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    tz = tz or app_timezone()
    return dt.replace(tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt, tz=None):
    """Naive UTC -> aware datetime in ``tz`` (default: the app timezone)."""
    if dt is None:
        return None
    tz = tz or app_timezone()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def safe_iso(dt):
    """ISO 8601 string for naive-UTC datetimes and dates; None when empty."""
    if not dt:
        return None

    if isinstance(dt, datetime):
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).isoformat()

    if isinstance(dt, date):
        return dt.isoformat()

    return str(dt)


def age_on(dob, reference):
    """Whole years between ``dob`` and ``reference`` (both dates)."""
    if dob is None or reference is None:
        return None
    years = reference.year - dob.year
    if (reference.month, reference.day) < (dob.month, dob.day):
        years -= 1
    return years
