"""
Read-side views returned by the statistics service.
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from .enums import BloodGroup


class DonationStats(BaseModel):
    total_donations: int = 0
    total_units: int = 0
    total_points: int = 0
    completed_donations: int = 0
    pending_donations: int = 0
    cancelled_donations: int = 0


class RequestStats(BaseModel):
    total: int = 0
    active: int = 0
    fulfilled: int = 0
    expired: int = 0
    cancelled: int = 0
    critical: int = 0
    urgent: int = 0
    normal: int = 0


class LeaderboardEntry(BaseModel):
    donor_id: str
    name: str
    blood_group: BloodGroup
    total_donations: int
    total_units: int
    total_points: int
    last_donation: Optional[datetime] = None


class DonorSummary(BaseModel):
    total_donations: int = 0
    total_units: int = 0
    total_points: int = 0
    completed_donations: int = 0
    average_points_per_donation: float = 0
    first_donation: Optional[datetime] = None
    last_donation: Optional[datetime] = None
    days_since_last_donation: Optional[int] = None
    can_donate: bool = True


class BloodGroupCount(BaseModel):
    blood_group: BloodGroup
    count: int
    total_units: Optional[int] = None
    total_points: Optional[int] = None


class UserStats(BaseModel):
    total_users: int = 0
    total_donors: int = 0
    total_patients: int = 0
    total_hospitals: int = 0
    available_donors: int = 0
    verified_users: int = 0
    blood_group_distribution: List[BloodGroupCount] = []


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = -(-total // limit) if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages,
                   has_next=page < pages, has_prev=page > 1)
