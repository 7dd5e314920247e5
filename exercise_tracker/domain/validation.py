"""Field checks and query normalisation for exercise tracker requests."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timezone
from typing import Any

from .contracts import LogQuery, NewExercise
from .errors import InvalidFieldError, MissingFieldError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%a %b %d %Y"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

# BSON stores integers as signed 64-bit values.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of ``value`` or return ``None``.

    Strings such as ``"30"`` and ``"30min"`` yield 30; floats are truncated.
    Booleans are rejected even though they subclass ``int``, as are values
    outside the signed 64-bit range.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        parsed = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match is None:
            return None
        digits = match.group(1).lstrip("+-").lstrip("0")
        if len(digits) > 19:
            return None
        parsed = int(match.group(1))
    else:
        return None
    if not INT64_MIN <= parsed <= INT64_MAX:
        return None
    return parsed


def parse_date(value: str) -> datetime | None:
    """Parse an ISO 8601 date or datetime into an aware UTC datetime.

    Calendar dates resolve to midnight UTC; naive datetimes are assumed UTC.
    Returns ``None`` when the value cannot be parsed.
    """
    text = value.strip()
    try:
        return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(value: datetime) -> str:
    """Render a timestamp as a calendar-date string such as ``Mon Jan 01 2024``."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(DATE_FORMAT)


def require_username(value: Any) -> str:
    if _is_blank(value):
        raise MissingFieldError("Username is required")
    if not isinstance(value, str):
        raise InvalidFieldError("Invalid username")
    return value


def validate_exercise(
    user_id: str,
    description: Any,
    duration: Any,
    date_value: Any,
    now: datetime,
) -> NewExercise:
    """Check an add-exercise payload and return the normalised input."""
    if _is_blank(description) or _is_blank(duration):
        raise MissingFieldError("Description and duration are required")
    if isinstance(description, (int, float)) and not isinstance(description, bool):
        description = str(description)
    if not isinstance(description, str):
        raise InvalidFieldError("Invalid description")

    parsed_duration = parse_int(duration)
    if parsed_duration is None or parsed_duration <= 0:
        raise InvalidFieldError("Invalid duration")

    if _is_blank(date_value):
        exercise_date = now
    else:
        exercise_date = parse_date(date_value) if isinstance(date_value, str) else None
        if exercise_date is None:
            raise InvalidFieldError("Invalid date")

    return NewExercise(
        user_id=user_id,
        description=description,
        duration=parsed_duration,
        date=exercise_date,
    )


def parse_log_query(
    date_from: str | None,
    date_to: str | None,
    limit: str | None,
) -> LogQuery:
    """Build log filters, dropping bounds and limits that do not parse."""
    query = LogQuery()
    if date_from:
        query.date_from = parse_date(date_from)
        if query.date_from is None:
            logger.debug("ignoring malformed 'from' filter %r", date_from)
    if date_to:
        query.date_to = parse_date(date_to)
        if query.date_to is None:
            logger.debug("ignoring malformed 'to' filter %r", date_to)
    if limit:
        parsed_limit = parse_int(limit)
        if parsed_limit is not None and parsed_limit > 0:
            query.limit = parsed_limit
        else:
            logger.debug("ignoring malformed limit %r", limit)
    return query
