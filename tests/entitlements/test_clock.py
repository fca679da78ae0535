"""Unit tests for entitlement time arithmetic (pure, no DB)."""
from datetime import datetime, timedelta, timezone

import pytest

from tipster.services.entitlements import clock

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestIsExpired:
    def test_null_expiry_is_not_expired(self):
        assert clock.is_expired(None, NOW) is False

    def test_past_expiry_is_expired(self):
        assert clock.is_expired(NOW - timedelta(seconds=1), NOW) is True

    def test_expiry_equal_to_now_is_not_expired(self):
        assert clock.is_expired(NOW, NOW) is False

    def test_naive_expiry_is_treated_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert clock.is_expired(naive, NOW) is True


class TestIsPremiumLapsed:
    def test_premium_without_expiry_counts_as_lapsed(self):
        assert clock.is_premium_lapsed("PREMIUM", None, NOW) is True

    def test_active_premium_is_not_lapsed(self):
        assert clock.is_premium_lapsed("PREMIUM", NOW + timedelta(days=1), NOW) is False

    def test_other_roles_never_lapse(self):
        assert clock.is_premium_lapsed("NORMAL", NOW - timedelta(days=1), NOW) is False
        assert clock.is_premium_lapsed("ADMIN", None, NOW) is False


class TestExtend:
    def test_null_expiry_extends_from_now(self):
        assert clock.extend(None, 30, NOW) == NOW + timedelta(days=30)

    def test_elapsed_expiry_extends_from_now(self):
        assert clock.extend(NOW - timedelta(days=5), 30, NOW) == NOW + timedelta(days=30)

    def test_unexpired_time_stacks(self):
        current = NOW + timedelta(days=10)
        assert clock.extend(current, 30, NOW) == NOW + timedelta(days=40)

    def test_result_is_never_before_now_plus_days(self):
        for current in (None, NOW - timedelta(days=400), NOW, NOW + timedelta(hours=3)):
            assert clock.extend(current, 1, NOW) >= NOW + timedelta(days=1)

    @pytest.mark.parametrize("days", [0, -1, 1.5, True, "30"])
    def test_invalid_days_rejected(self, days):
        with pytest.raises(ValueError):
            clock.extend(None, days, NOW)


class TestRemaining:
    def test_days_left_rounds_up(self):
        assert clock.days_left(NOW + timedelta(days=3, hours=5), NOW) == 4

    def test_hours_left_rounds_up(self):
        assert clock.hours_left(NOW + timedelta(hours=5, minutes=1), NOW) == 6

    def test_elapsed_is_zero(self):
        assert clock.remaining(NOW - timedelta(days=1), NOW) == timedelta(0)
        assert clock.days_left(None, NOW) == 0
