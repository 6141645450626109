from datetime import timedelta

import pytest

from bloodbuddy.models import BloodGroup, User
from bloodbuddy.services import (
    compatible_donors, can_donate, cooldown_elapsed, days_since, ineligibility_reason, calculate_points
)
from tests.conftest import T0


def make_user(**overrides) -> User:
    data = dict(
        name="Asha", email="asha@example.com", user_type="donor", blood_group="B+",
        phone="123", city="Pune", pincode="411001"
    )
    data.update(overrides)
    return User(**data)


class TestCompatibility:
    def test_positive_group_accepts_both_o_groups(self):
        assert compatible_donors(BloodGroup.A_POSITIVE) == {
            BloodGroup.A_POSITIVE, BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE
        }

    def test_negative_group_accepts_only_o_negative(self):
        assert compatible_donors(BloodGroup.AB_NEGATIVE) == {BloodGroup.AB_NEGATIVE, BloodGroup.O_NEGATIVE}

    def test_o_negative_only_from_itself(self):
        assert compatible_donors(BloodGroup.O_NEGATIVE) == {BloodGroup.O_NEGATIVE}

    def test_same_group_rh_negative_is_not_added(self):
        # Simplified table: A+ recipients are not matched with A- donors.
        assert BloodGroup.A_NEGATIVE not in compatible_donors(BloodGroup.A_POSITIVE)

    def test_accepts_plain_strings(self):
        assert BloodGroup.O_POSITIVE in compatible_donors("B+")


class TestEligibility:
    @pytest.mark.parametrize("days,expected", [(89, False), (90, True), (91, True)])
    def test_cooldown_boundary(self, days, expected):
        user = make_user(last_donation=T0 - timedelta(days=days))
        assert can_donate(user, T0) is expected

    def test_partial_day_rounds_down(self):
        user = make_user(last_donation=T0 - timedelta(days=90) + timedelta(minutes=1))
        assert can_donate(user, T0) is False

    def test_never_donated_is_eligible(self):
        assert can_donate(make_user(), T0) is True
        assert days_since(None, T0) is None

    def test_non_donor_is_ineligible(self):
        patient = make_user(user_type="patient", blood_group=None)
        assert can_donate(patient, T0) is False
        assert ineligibility_reason(patient, T0) == "Only donors can record donations"

    def test_unavailable_donor_is_ineligible(self):
        assert can_donate(make_user(is_available=False), T0) is False

    def test_reason_reports_remaining_days(self):
        user = make_user(last_donation=T0 - timedelta(days=80))
        assert "10 more day" in ineligibility_reason(user, T0)

    def test_custom_cooldown(self):
        last = T0 - timedelta(days=60)
        assert cooldown_elapsed(last, T0, cooldown_days=56) is True
        assert cooldown_elapsed(last, T0) is False


class TestPoints:
    def test_single_unit_general_donation(self):
        assert calculate_points(1) == 50

    def test_single_unit_for_request(self):
        assert calculate_points(1, "req-1") == 75

    def test_two_units_general_donation(self):
        assert calculate_points(2) == 75

    def test_two_units_for_request(self):
        assert calculate_points(2, "req-1") == 100
