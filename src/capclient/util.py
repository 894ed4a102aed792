from __future__ import annotations

from datetime import datetime, timezone

from dateutil import parser as date_parser

API_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_api_time(value: datetime) -> str:
    """Render a datetime as the API's ``YYYY-MM-DDTHH:MM:SS`` UTC string."""
    return to_utc(value).strftime(API_TIME_FORMAT)


def parse_user_time(text: str) -> datetime:
    """Parse a loosely formatted date from the command line; naive input is UTC."""
    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Could not parse date: '{text}'") from exc
    return to_utc(parsed)


def mask(value: str) -> str:
    if not value:
        return "<empty>"
    return f"{value[:2]}***"
