"""
Request body helpers shared by the route modules.
"""
from datetime import datetime, timezone

from flask import request

from hms.errors import ValidationError


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError('Request body must be JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def pick(data, *keys, default=None):
    """First present key among camelCase/snake_case spellings."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def parse_datetime(value, field='date'):
    """Parse an ISO-8601 date or timestamp into a naive UTC datetime."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f'{field} must be an ISO-8601 date')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_int(value, field='id'):
    """Optional integer reference from a JSON body."""
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')
