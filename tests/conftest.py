"""Shared test fixtures for presence sync tests.

This module provides common fixtures used across all test modules:
- A fixed evaluation clock
- An in-memory Microsoft Graph fake served through httpx.MockTransport
- Graph payload builders for users and events

Usage:
    def test_something(fake_graph, graph_client):
        fake_graph.add_user("u1", "Alice")
        ...
"""

import json
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from presence_sync.config_models import PresenceSyncConfig
from presence_sync.graph.client import GraphClient


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
GRAPH_BASE = "https://graph.microsoft.com/v1.0"
TOKEN_HOST = "login.microsoftonline.com"

# Monday, before the 2026 US DST switch (March 8)
NOW = datetime(2026, 3, 2, 15, 0, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Payload Builders
# ─────────────────────────────────────────────────────────────────────────────


def graph_datetime(moment: datetime) -> str:
    """Format like Graph does: naive UTC with 7 fractional digits."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + ".0000000"


def make_event(
    subject: str = "DND",
    starts_in_minutes: float = 3,
    duration_minutes: float = 30,
    time_zone: str = "UTC",
    event_id: str | None = None,
    now: datetime = NOW,
) -> dict[str, Any]:
    """Build a Graph event record relative to `now`."""
    start = now + timedelta(minutes=starts_in_minutes)
    end = start + timedelta(minutes=duration_minutes)
    return {
        "id": event_id or f"evt-{subject}-{starts_in_minutes}",
        "subject": subject,
        "start": {"dateTime": graph_datetime(start), "timeZone": "UTC"},
        "end": {"dateTime": graph_datetime(end), "timeZone": "UTC"},
        "originalStartTimeZone": time_zone,
        "originalEndTimeZone": time_zone,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Graph Fake
# ─────────────────────────────────────────────────────────────────────────────


class FakeGraph:
    """In-memory Graph tenant answering token, users, events and presence calls."""

    def __init__(self, users_page_size: int = 100):
        self.users: list[dict[str, Any]] = []
        self.users_page_size = users_page_size
        self.events: dict[str, list[dict[str, Any]]] = {}
        self.event_failures: dict[str, int] = {}
        self.presence_failures: dict[str, int] = {}
        self.token_status = 200
        self.users_status = 200
        self.requests: list[httpx.Request] = []
        self.presence_calls: list[dict[str, Any]] = []

    def add_user(self, user_id: str, name: str, events: list[dict[str, Any]] | None = None) -> None:
        self.users.append({"id": user_id, "displayName": name, "userPrincipalName": f"{user_id}@contoso.com"})
        self.events[user_id] = events or []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = urlparse(str(request.url))
        query = parse_qs(url.query)

        if url.hostname == TOKEN_HOST:
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client",
                                                               "error_description": "bad secret"})
            return httpx.Response(200, json={"access_token": "tok-123", "expires_in": 3599})

        parts = url.path.split("/")[2:]  # drop "", "v1.0"

        if parts == ["users"]:
            if self.users_status != 200:
                return httpx.Response(self.users_status, json={"error": {"message": "boom"}})
            return self._users_page(int(query.get("$skiptoken", ["0"])[0]))

        if len(parts) == 4 and parts[0] == "users" and parts[2:] == ["calendar", "events"]:
            user_id = parts[1]
            if user_id in self.event_failures:
                return httpx.Response(
                    self.event_failures[user_id],
                    json={"error": {"code": "MailboxNotEnabledForRESTAPI", "message": "No mailbox"}},
                )
            return httpx.Response(200, json={"value": self.events.get(user_id, [])})

        if len(parts) == 4 and parts[0] == "users" and parts[2:] == ["presence", "setPresence"]:
            user_id = parts[1]
            if user_id in self.presence_failures:
                return httpx.Response(self.presence_failures[user_id], json={"error": {"message": "Forbidden"}})
            self.presence_calls.append({"user_id": user_id, **json.loads(request.content)})
            return httpx.Response(200)

        return httpx.Response(404, json={"error": {"message": f"No route for {url.path}"}})

    def _users_page(self, offset: int) -> httpx.Response:
        page = self.users[offset:offset + self.users_page_size]
        payload: dict[str, Any] = {"value": page}
        if offset + self.users_page_size < len(self.users):
            payload["@odata.nextLink"] = f"{GRAPH_BASE}/users?$skiptoken={offset + self.users_page_size}"
        return httpx.Response(200, json=payload)

    def requests_to(self, path_suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def http_client(fake_graph: FakeGraph) -> Generator[httpx.Client, None, None]:
    """httpx.Client routed to the fake tenant."""
    client = httpx.Client(transport=httpx.MockTransport(fake_graph.handler))
    yield client
    client.close()


@pytest.fixture
def sleeps() -> list[float]:
    """Records inter-page delays instead of sleeping."""
    return []


@pytest.fixture
def graph_client(http_client: httpx.Client, sleeps: list[float]) -> GraphClient:
    return GraphClient("tok-123", http_client=http_client, sleep=sleeps.append)


@pytest.fixture
def config() -> PresenceSyncConfig:
    """Complete configuration with credentials set."""
    return PresenceSyncConfig(
        credentials={"app_id": "app-1", "tenant_id": "tenant-1", "app_secret": "s3cret"},
        matching={"marker": "DND"},
    )


@pytest.fixture
def clock():
    return lambda: NOW
