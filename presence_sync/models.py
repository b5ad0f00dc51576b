"""
Tool: Presence Sync Models
Purpose: Data structures flowing through a presence sync pass

Usage:
    from presence_sync.models import Principal, CandidateEvent, NormalizedEvent, PresenceCommand

Principal and CandidateEvent are built from Graph payloads; NormalizedEvent,
Action and PresenceCommand only exist inside one decision cycle and are never
persisted.
"""

import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


# Presence values sent for a marker meeting
AVAILABILITY_DO_NOT_DISTURB = "DoNotDisturb"
ACTIVITY_PRESENTING = "Presenting"

# Graph emits up to 7 fractional digits; datetime accepts at most 6
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def parse_graph_datetime(value: str) -> datetime:
    """
    Parse a Graph dateTime string into a naive datetime.

    Offset-aware values are converted to UTC before the tzinfo is dropped.

    Raises:
        ValueError: If the string is empty or not ISO 8601
    """
    if not value:
        raise ValueError("Empty dateTime")
    text = _FRACTION_RE.sub(r".\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class Principal:
    """A user whose calendar is polled during a pass."""

    id: str
    display_name: str = ""
    user_principal_name: str | None = None

    def __str__(self) -> str:
        return self.display_name or self.user_principal_name or self.id

    @classmethod
    def from_graph(cls, data: dict[str, Any]) -> "Principal":
        """Build from a Graph /users record."""
        return cls(
            id=data.get("id", ""),
            display_name=data.get("displayName") or "",
            user_principal_name=data.get("userPrincipalName"),
        )


@dataclass(frozen=True)
class CandidateEvent:
    """
    A calendar event whose subject matched the marker.

    start_instant and end_instant are naive timestamps exactly as the
    calendar API returned them (UTC wall-clock, the Graph default). They only
    become comparable once interpreted against original_time_zone_id.
    """

    subject: str
    start_instant: datetime
    end_instant: datetime
    original_time_zone_id: str
    event_id: str | None = None

    @classmethod
    def from_graph(cls, data: dict[str, Any]) -> "CandidateEvent":
        """
        Build from a Graph event record.

        Raises:
            ValueError: If start or end is missing or unparseable
        """
        start_data = data.get("start") or {}
        end_data = data.get("end") or {}
        time_zone_id = data.get("originalStartTimeZone") or start_data.get("timeZone") or ""
        return cls(
            subject=data.get("subject") or "",
            start_instant=parse_graph_datetime(start_data.get("dateTime", "")),
            end_instant=parse_graph_datetime(end_data.get("dateTime", "")),
            original_time_zone_id=time_zone_id,
            event_id=data.get("id"),
        )


@dataclass(frozen=True)
class NormalizedEvent:
    """A CandidateEvent resolved into its own timezone."""

    subject: str
    local_start: datetime
    local_end: datetime
    duration: timedelta
    minutes_until_start: float
    time_zone_id: str

    @property
    def duration_minutes(self) -> float:
        return self.duration.total_seconds() / 60

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "subject": self.subject,
            "local_start": self.local_start.isoformat(),
            "local_end": self.local_end.isoformat(),
            "duration_minutes": self.duration_minutes,
            "minutes_until_start": self.minutes_until_start,
            "time_zone_id": self.time_zone_id,
        }


@dataclass(frozen=True)
class Action:
    """A positive window decision: override presence for this many minutes."""

    expiration_minutes: int


@dataclass
class PresenceCommand:
    """
    Outbound presence override.

    Fire-and-forget: nothing keeps the command after dispatch.
    """

    user_id: str
    expiration_minutes: int
    availability: str = AVAILABILITY_DO_NOT_DISTURB
    activity: str = ACTIVITY_PRESENTING
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def expiration_duration(self) -> str:
        """Expiration as an ISO 8601 duration (PT{N}M)."""
        return f"PT{self.expiration_minutes}M"

    def to_request_body(self, session_id: str) -> dict[str, Any]:
        """Body for POST /users/{id}/presence/setPresence."""
        return {
            "sessionId": session_id,
            "availability": self.availability,
            "activity": self.activity,
            "expirationDuration": self.expiration_duration,
        }

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["expiration_duration"] = self.expiration_duration
        return d


@dataclass
class TokenGrant:
    """Bearer token returned by the credential provider."""

    access_token: str
    expires_in: int = 3600
    acquired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime:
        return self.acquired_at + timedelta(seconds=self.expires_in)
