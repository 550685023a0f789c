"""Argument parsing shared by the GLP-1 MCP tools."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone, tzinfo


class ToolInputError(ValueError):
    """Raised when a tool argument cannot be interpreted."""


def parse_day(value: str, tz: tzinfo) -> date:
    """Parse an ISO date, defaulting to today in ``tz`` when empty."""
    if not value:
        return datetime.now(tz).date()
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ToolInputError(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc


def parse_moment(value: str, tz: tzinfo) -> datetime:
    """Parse an ISO timestamp, defaulting to now; naive values are local to ``tz``."""
    if not value:
        return datetime.now(timezone.utc)
    try:
        moment = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ToolInputError(f"Invalid timestamp {value!r}; expected ISO 8601") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment


def error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})
