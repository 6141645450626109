from fastapi import Depends, Header, HTTPException
from typing import Optional

from bloodbuddy.database import get_db
from .clock import Clock, utc_now, get_clock
from .errors import DomainError, NotFound, Forbidden, InvalidState, IneligibleDonor, ValidationFailure
from .compatibility import compatible_donors
from .eligibility import can_donate, cooldown_elapsed, days_since, ineligibility_reason
from .points import calculate_points
from .request_service import RequestService, compute_expiry, time_remaining_hours
from .donation_service import DonationService
from .user_service import UserService
from .stats_service import StatsService
from .audit_service import AuditService


async def get_current_user(x_user_id: Optional[str] = Header(default=None), db=Depends(get_db)) -> dict:
    """Resolve the acting user. Credentials are verified upstream; this only
    looks up the identity the gateway forwarded."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = await db.users.find_one({"id": x_user_id}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=401, detail="Invalid user")
    return user


def get_request_service(db=Depends(get_db), clock: Clock = Depends(get_clock)) -> RequestService:
    return RequestService(db, clock)


def get_donation_service(db=Depends(get_db), clock: Clock = Depends(get_clock)) -> DonationService:
    return DonationService(db, clock)


def get_user_service(db=Depends(get_db), clock: Clock = Depends(get_clock)) -> UserService:
    return UserService(db, clock)


def get_stats_service(db=Depends(get_db), clock: Clock = Depends(get_clock)) -> StatsService:
    return StatsService(db, clock)


def get_audit_service(db=Depends(get_db)) -> AuditService:
    return AuditService(db)
