from datetime import datetime
from dateutil import parser as date_parser


def parse_timestamp(value) -> datetime | None:
    """Parse the ISO-ish timestamps the platform returns; None when absent or garbled."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None
