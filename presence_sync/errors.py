"""
Fault taxonomy for a presence sync pass.

Each fault has a fixed blast radius:

    AuthError               -> aborts the whole pass
    ConfigError             -> aborts the whole pass, before any network call
    TransportError          -> skips the principal being processed
    TimeZoneResolutionError -> skips the single event
    DispatchError           -> recorded, the pass moves on
"""


class PresenceSyncError(Exception):
    """Base class for all presence sync faults."""


class ConfigError(PresenceSyncError):
    """Required configuration (usually credentials) is missing."""


class AuthError(PresenceSyncError):
    """Token acquisition failed."""


class TransportError(PresenceSyncError):
    """An HTTP call failed or returned a payload we could not use."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TimeZoneResolutionError(PresenceSyncError):
    """An event's timezone id is empty or unknown."""

    def __init__(self, time_zone_id: str | None):
        super().__init__(f"Unrecognized time zone id: {time_zone_id!r}")
        self.time_zone_id = time_zone_id


class DispatchError(PresenceSyncError):
    """The presence endpoint rejected a state change."""

    def __init__(self, message: str, user_id: str, status_code: int | None = None):
        super().__init__(message)
        self.user_id = user_id
        self.status_code = status_code
