"""
Tool: Window Decision Engine
Purpose: Decide whether a normalized event is actionable and for how long

An event is actionable once it starts within the threshold (5 minutes by
default). The check is inclusive and also fires for events already in
progress, so a late poll still catches a meeting that has just begun.
Events further out produce no action; the next poll will see them again.

The override length is the meeting length capped at 240 minutes, which bounds
how long a stale override can outlive a pass that never runs again.

Usage:
    from presence_sync.decision import decide

    action = decide(normalized_event)
    if action:
        apply_presence(client, user_id, action.expiration_minutes, session_id)
"""

import math

from presence_sync.models import Action, NormalizedEvent


DEFAULT_THRESHOLD_MINUTES = 5.0
MAX_OVERRIDE_MINUTES = 240


def is_actionable(minutes_until_start: float, threshold_minutes: float = DEFAULT_THRESHOLD_MINUTES) -> bool:
    """True iff the event starts within the threshold (inclusive)."""
    return minutes_until_start <= threshold_minutes


def override_minutes(duration_minutes: float, max_minutes: int = MAX_OVERRIDE_MINUTES) -> int:
    """Meeting length in whole minutes, clamped to [0, max_minutes]."""
    max_minutes = min(max(max_minutes, 0), MAX_OVERRIDE_MINUTES)
    minutes = math.floor(duration_minutes)
    return max(0, min(minutes, max_minutes))


def decide(
    event: NormalizedEvent,
    threshold_minutes: float = DEFAULT_THRESHOLD_MINUTES,
    max_minutes: int = MAX_OVERRIDE_MINUTES,
) -> Action | None:
    """
    Decide whether to override presence for this event.

    Returns:
        Action with the bounded expiration, or None to defer to a later poll
    """
    if not is_actionable(event.minutes_until_start, threshold_minutes):
        return None
    return Action(expiration_minutes=override_minutes(event.duration_minutes, max_minutes))
