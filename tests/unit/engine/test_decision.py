"""Tests for presence_sync/decision.py

Key properties:
- Action iff minutes_until_start <= 5 (inclusive, any real value)
- Expiration == min(duration_minutes, 240), never outside [0, 240]
"""

from datetime import datetime, timedelta, timezone

import pytest

from presence_sync.decision import decide, is_actionable, override_minutes
from presence_sync.models import Action, NormalizedEvent


def _normalized(minutes_until_start: float, duration_minutes: float = 30) -> NormalizedEvent:
    start = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
    return NormalizedEvent(
        subject="DND",
        local_start=start,
        local_end=start + timedelta(minutes=duration_minutes),
        duration=timedelta(minutes=duration_minutes),
        minutes_until_start=minutes_until_start,
        time_zone_id="UTC",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Window Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestActionableWindow:
    @pytest.mark.parametrize("minutes", [5.0, 5, 4.99, 3, 0, -1, -45.5])
    def test_acts_at_or_under_threshold(self, minutes):
        assert is_actionable(minutes) is True
        assert decide(_normalized(minutes)) is not None

    @pytest.mark.parametrize("minutes", [5.01, 6, 10, 59])
    def test_defers_above_threshold(self, minutes):
        assert is_actionable(minutes) is False
        assert decide(_normalized(minutes)) is None

    def test_custom_threshold(self):
        assert decide(_normalized(8), threshold_minutes=10) is not None
        assert decide(_normalized(8), threshold_minutes=7.5) is None


# ─────────────────────────────────────────────────────────────────────────────
# Override Duration Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestOverrideDuration:
    @pytest.mark.parametrize("duration,expected", [
        (1, 1),
        (30, 30),
        (239, 239),
        (240, 240),
        (241, 240),
        (300, 240),
        (24 * 60, 240),
    ])
    def test_capped_at_four_hours(self, duration, expected):
        assert decide(_normalized(3, duration)) == Action(expiration_minutes=expected)

    def test_partial_minutes_floor(self):
        assert override_minutes(29.9) == 29

    def test_zero_and_negative_durations_clamp_to_zero(self):
        assert override_minutes(0) == 0
        assert override_minutes(-15) == 0

    def test_configured_cap_cannot_exceed_240(self):
        assert override_minutes(500, max_minutes=600) == 240
        assert override_minutes(500, max_minutes=60) == 60

    def test_result_always_in_bounds(self):
        for duration in range(-10, 1000, 7):
            assert 0 <= override_minutes(duration) <= 240


# ─────────────────────────────────────────────────────────────────────────────
# Scenario Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestScenarios:
    def test_starts_in_three_minutes_for_thirty(self):
        assert decide(_normalized(3, 30)) == Action(expiration_minutes=30)

    def test_starts_in_ten_minutes(self):
        assert decide(_normalized(10, 30)) is None

    def test_long_meeting_starting_now(self):
        assert decide(_normalized(0, 300)) == Action(expiration_minutes=240)
