from datetime import datetime, timezone
from typing import Any, Dict, Optional
import re

from .constants import DATE_FORMAT

WHITESPACE_REG = re.compile(r'\s+')


def get_header(token, custom_args: dict = None) -> dict:
    header = {
        'Authorization': f'Bearer {token}',
        'Accept': 'application/json'
    }

    if custom_args is not None:
        header.update(custom_args)
    return header


def make_shortname(name: str) -> str:
    """Lowercases a course name and joins its words with underscores."""
    return re.sub(WHITESPACE_REG, '_', name.strip().lower())


def parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))


def to_timestamp(dt: Optional[datetime]) -> Optional[int]:
    """Converts a datetime to whole unix seconds, as Moodle expects."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def flatten_params(params: Dict[str, Any], prefix: str = '') \
        -> Dict[str, Any]:
    """
    Flattens nested dicts and lists into the form fields Moodle's REST
    server expects, e.g. ``{'courses': [{'id': 3}]}`` becomes
    ``{'courses[0][id]': 3}``. Keys whose value is `None` are dropped
    and booleans are sent as 0/1.

    :param params: the (possibly nested) parameters
    :param prefix: the key under which `params` is nested
    :return: a flat mapping suitable for a form-encoded body
    """
    flattened = {}
    for key, value in params.items():
        full_key = f'{prefix}[{key}]' if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            flattened.update(flatten_params(value, full_key))
        elif isinstance(value, (list, tuple)):
            flattened.update(
                flatten_params(dict(enumerate(value)), full_key)
            )
        elif isinstance(value, bool):
            flattened[full_key] = int(value)
        else:
            flattened[full_key] = value

    return flattened
