"""
Tool: Time Normalizer
Purpose: Resolve an event's timezone id and express the event in that zone

Graph reports an event's originalStartTimeZone as a Windows zone name
("Pacific Standard Time"), occasionally as an IANA id, or as the special
"tzone://Microsoft/Utc". Windows names are mapped to IANA ids with tzlocal's
CLDR table and resolved through zoneinfo, so the UTC offset applied is the
one in force on the event's own date (DST included).

Usage:
    from presence_sync.timezones import normalize, resolve_time_zone

    zone = resolve_time_zone("W. Europe Standard Time")
    normalized = normalize(candidate_event)

Dependencies:
    - tzlocal (Windows -> IANA zone names)
    - tzdata (zoneinfo database on hosts without one)
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal.windows_tz import win_tz

from presence_sync.errors import TimeZoneResolutionError
from presence_sync.models import CandidateEvent, NormalizedEvent

logger = logging.getLogger(__name__)


# Graph-specific ids that neither table knows
_ALIASES = {
    "tzone://Microsoft/Utc": "UTC",
    "tzone://Microsoft/Custom": None,
    "Coordinated Universal Time": "UTC",
}


def resolve_time_zone(time_zone_id: str | None) -> ZoneInfo:
    """
    Map a Windows or IANA timezone id to a ZoneInfo.

    Raises:
        TimeZoneResolutionError: If the id is empty or unknown
    """
    if not time_zone_id or not time_zone_id.strip():
        raise TimeZoneResolutionError(time_zone_id)

    key = time_zone_id.strip()
    if key in _ALIASES:
        key = _ALIASES[key]
        if key is None:
            raise TimeZoneResolutionError(time_zone_id)
    key = win_tz.get(key, key)

    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise TimeZoneResolutionError(time_zone_id) from e


def normalize(event: CandidateEvent, now: datetime | None = None) -> NormalizedEvent:
    """
    Express a candidate event in its own timezone.

    Args:
        event: Event with naive UTC start/end instants
        now: Evaluation instant; read from the wall clock when omitted. Pass
            it only from tests, so the window decision always sees a fresh
            clock rather than the time the event was fetched.

    Returns:
        NormalizedEvent with local start/end, duration and whole minutes
        (truncated toward zero) until start

    Raises:
        TimeZoneResolutionError: If the event's timezone id cannot be resolved
    """
    zone = resolve_time_zone(event.original_time_zone_id)

    local_start = event.start_instant.replace(tzinfo=timezone.utc).astimezone(zone)
    local_end = event.end_instant.replace(tzinfo=timezone.utc).astimezone(zone)
    # Offset-free: computed from the raw instants
    duration = event.end_instant - event.start_instant

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now_local = now.astimezone(zone)

    minutes_until_start = int((local_start - now_local).total_seconds() / 60)

    return NormalizedEvent(
        subject=event.subject,
        local_start=local_start,
        local_end=local_end,
        duration=duration,
        minutes_until_start=minutes_until_start,
        time_zone_id=event.original_time_zone_id,
    )
