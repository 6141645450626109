"""
Donor eligibility rules.

Kept as plain functions over explicit inputs so the donation recorder and
the statistics summaries apply the exact same cooldown.
"""
from datetime import datetime
from typing import Optional

from bloodbuddy.config import DONATION_COOLDOWN_DAYS
from bloodbuddy.models import User


def days_since(last_donation: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since ``last_donation``, or None if never donated."""
    if last_donation is None:
        return None
    return (now - last_donation).days


def cooldown_elapsed(last_donation: Optional[datetime], now: datetime,
                     cooldown_days: int = DONATION_COOLDOWN_DAYS) -> bool:
    elapsed = days_since(last_donation, now)
    if elapsed is None:
        return True
    return elapsed >= cooldown_days


def ineligibility_reason(user: User, now: datetime,
                         cooldown_days: int = DONATION_COOLDOWN_DAYS) -> Optional[str]:
    if not user.is_donor:
        return "Only donors can record donations"
    if not user.is_available:
        return "Donor is marked unavailable"
    if not cooldown_elapsed(user.last_donation, now, cooldown_days):
        remaining = cooldown_days - days_since(user.last_donation, now)
        return f"Donor must wait {remaining} more day(s) before donating again"
    return None


def can_donate(user: User, now: datetime, cooldown_days: int = DONATION_COOLDOWN_DAYS) -> bool:
    return ineligibility_reason(user, now, cooldown_days) is None
