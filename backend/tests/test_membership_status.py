"""
Tests for membership status evaluation.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from gymdesk.models.customer import MembershipStatusEnum
from gymdesk.services.membership_service import expiring_soon_window, membership_status

NOW = datetime(2024, 6, 1, 12, 0, 0)


def member(expire_date, is_active=True):
    return SimpleNamespace(expire_date=expire_date, is_active=is_active)


@pytest.mark.membership
class TestMembershipStatus:
    def test_past_expiry_is_expired_even_when_flagged_active(self):
        status = membership_status(member(datetime(2024, 1, 1)), now=NOW)
        assert status == MembershipStatusEnum.EXPIRED

    def test_missing_expiry_is_expired(self):
        assert membership_status(member(None), now=NOW) == MembershipStatusEnum.EXPIRED

    def test_inactive_flag_wins_over_future_expiry(self):
        status = membership_status(member(NOW + timedelta(days=60), is_active=False), now=NOW)
        assert status == MembershipStatusEnum.EXPIRED

    def test_within_window_is_expiring_soon(self):
        status = membership_status(member(NOW + timedelta(days=3)), now=NOW)
        assert status == MembershipStatusEnum.EXPIRING_SOON

    def test_window_boundaries_are_inclusive(self):
        assert membership_status(member(NOW), now=NOW) == MembershipStatusEnum.EXPIRING_SOON
        assert membership_status(member(NOW + timedelta(days=7)), now=NOW) == MembershipStatusEnum.EXPIRING_SOON

    def test_just_past_window_is_active(self):
        status = membership_status(member(NOW + timedelta(days=7, seconds=1)), now=NOW)
        assert status == MembershipStatusEnum.ACTIVE

    def test_expiry_day_counts_in_full(self):
        # Renewed "until 2025-03-01": still valid all of that day
        customer = member(datetime(2025, 3, 1))
        assert membership_status(customer, now=datetime(2025, 3, 1, 18, 30)) == MembershipStatusEnum.EXPIRING_SOON
        assert membership_status(customer, now=datetime(2025, 3, 1, 23, 59, 59)) == MembershipStatusEnum.EXPIRING_SOON
        assert membership_status(customer, now=datetime(2025, 3, 2)) == MembershipStatusEnum.EXPIRED

    def test_earlier_today_is_not_expired(self):
        status = membership_status(member(NOW - timedelta(hours=3)), now=NOW)
        assert status == MembershipStatusEnum.EXPIRING_SOON

    def test_yesterday_is_expired(self):
        status = membership_status(member(datetime(2024, 5, 31, 23, 59, 59)), now=NOW)
        assert status == MembershipStatusEnum.EXPIRED

    def test_custom_horizon(self):
        customer = member(NOW + timedelta(days=10))
        assert membership_status(customer, now=NOW) == MembershipStatusEnum.ACTIVE
        assert membership_status(customer, now=NOW, horizon_days=14) == MembershipStatusEnum.EXPIRING_SOON

    def test_timezone_aware_expiry_is_compared_in_utc(self):
        # 15:00 at UTC+3 is 12:00 UTC, i.e. exactly now
        aware = datetime(2024, 6, 1, 15, 0, tzinfo=timezone(timedelta(hours=3)))
        assert membership_status(member(aware), now=NOW) == MembershipStatusEnum.EXPIRING_SOON

    def test_far_future_is_active(self):
        assert membership_status(member(datetime(2099, 1, 1))) == MembershipStatusEnum.ACTIVE


@pytest.mark.membership
class TestExpiringSoonWindow:
    def test_window_starts_at_midnight_and_uses_default_horizon(self):
        start, end = expiring_soon_window(NOW)
        assert start == datetime(2024, 6, 1)
        assert end == NOW + timedelta(days=7)

    def test_aware_now_is_normalised(self):
        # 01:30 at UTC+3 is still the previous day in UTC
        start, end = expiring_soon_window(datetime(2024, 6, 1, 1, 30, tzinfo=timezone(timedelta(hours=3))))
        assert start == datetime(2024, 5, 31)
        assert end == datetime(2024, 6, 7, 22, 30)
        assert start.tzinfo is None


@pytest.mark.membership
class TestStatusFilterValues:
    @pytest.mark.parametrize("value,expected", [
        ("active", MembershipStatusEnum.ACTIVE),
        ("expired", MembershipStatusEnum.EXPIRED),
        ("expiringSoon", MembershipStatusEnum.EXPIRING_SOON),
        ("expiring", MembershipStatusEnum.EXPIRING_SOON),
        ("EXPIRING_SOON", MembershipStatusEnum.EXPIRING_SOON),
        ("all", None),
        ("", None),
        (None, None),
    ])
    def test_normalize(self, value, expected):
        assert MembershipStatusEnum.normalize(value) == expected

    def test_unknown_value_rejected(self):
        with pytest.raises(ValueError):
            MembershipStatusEnum.normalize("lapsed")
