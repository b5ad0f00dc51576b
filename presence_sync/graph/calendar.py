"""
Tool: Marker Event Matcher
Purpose: Find a user's calendar events tagged with the marker subject

The server-side filter selects events starting in [now, now + lookahead)
whose subject equals the marker. The lookahead is deliberately wider than
the actionable window so an approaching event is seen on several polls
before it fires. Subject case sensitivity is whatever Graph applies.

Usage:
    from presence_sync.graph.calendar import find_marked_events

    events = find_marked_events(client, principal, datetime.now(timezone.utc), "DND")
"""

import logging
from datetime import datetime, timedelta, timezone

from presence_sync.errors import TransportError
from presence_sync.graph.client import GraphClient
from presence_sync.models import CandidateEvent, Principal

logger = logging.getLogger(__name__)


EVENT_SELECT = "id,subject,start,end,originalStartTimeZone,originalEndTimeZone"
DEFAULT_LOOKAHEAD_MINUTES = 60

# Graph filters compare start/dateTime as UTC strings in this shape
_FILTER_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def events_path(principal: Principal) -> str:
    return f"/users/{principal.id}/calendar/events"


def _odata_quote(value: str) -> str:
    """Quote a string literal for an OData $filter."""
    return "'" + value.replace("'", "''") + "'"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def build_event_filter(now_utc: datetime, marker: str, lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES) -> str:
    """Build the $filter for marker events starting within the lookahead window."""
    window_start = _as_utc(now_utc)
    window_end = window_start + timedelta(minutes=lookahead_minutes)
    return (
        f"start/dateTime ge {_odata_quote(window_start.strftime(_FILTER_TIME_FORMAT))}"
        f" and start/dateTime lt {_odata_quote(window_end.strftime(_FILTER_TIME_FORMAT))}"
        f" and subject eq {_odata_quote(marker)}"
    )


def find_marked_events(
    client: GraphClient,
    principal: Principal,
    now_utc: datetime,
    marker: str,
    lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
) -> list[CandidateEvent]:
    """
    Find the principal's marker events starting within the lookahead window.

    Args:
        client: Authenticated Graph client
        principal: User whose calendar is queried
        now_utc: Start of the window
        marker: Exact subject to match
        lookahead_minutes: Width of the window

    Returns:
        CandidateEvents in the order Graph returned them

    Raises:
        TransportError: If the query fails (e.g. the user has no mailbox)
            or an event lacks a parseable start/end
    """
    params = {
        "$filter": build_event_filter(now_utc, marker, lookahead_minutes),
        "$select": EVENT_SELECT,
    }
    records = client.fetch_all(events_path(principal), params=params)

    events = []
    for record in records:
        try:
            events.append(CandidateEvent.from_graph(record))
        except ValueError as e:
            raise TransportError(
                f"Malformed event {record.get('id')!r} for {principal}: {e!s}",
                url=client.url(events_path(principal)),
            ) from e

    if events:
        logger.debug(f"{principal}: {len(events)} marker event(s) in the next {lookahead_minutes} minutes")
    return events
