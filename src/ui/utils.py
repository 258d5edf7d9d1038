"""UI helpers."""

from datetime import date


def format_visit_date(value: str) -> str:
    """Render an ISO date (``2023-04-15``) as ``04/15/2023``; unparseable values pass through."""
    try:
        return date.fromisoformat(value).strftime("%m/%d/%Y")
    except (TypeError, ValueError):
        return str(value)
