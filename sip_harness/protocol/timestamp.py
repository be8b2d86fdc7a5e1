"""SIP2 date/time fields."""

from datetime import datetime, timezone
from typing import Optional


LOCAL_ZONE = '    '
UTC_ZONE = '   Z'


def sip_timestamp(when: Optional[datetime] = None, utc: bool = False) -> str:
    """
    Format an 18-character SIP2 timestamp: YYYYMMDDZZZZHHMMSS.

    ZZZZ is four blanks for local time or '   Z' for UTC.

    Args:
        when: Time to format (defaults to now)
        utc: Convert to UTC and mark the zone field
    """
    if when is None:
        when = datetime.now(timezone.utc) if utc else datetime.now()
    elif utc and when.tzinfo is not None:
        when = when.astimezone(timezone.utc)

    zone = UTC_ZONE if utc else LOCAL_ZONE
    return when.strftime('%Y%m%d') + zone + when.strftime('%H%M%S')
