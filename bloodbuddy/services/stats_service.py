"""
Statistics Aggregator
Read-side rollups derived from the canonical donation, request and user
documents. The pure functions take records and ``now`` explicitly; the
service class only loads the collections and calls them.
"""
from collections import Counter, OrderedDict
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from bloodbuddy.config import DONATION_COOLDOWN_DAYS, DEFAULT_LEADERBOARD_LIMIT
from bloodbuddy.models import (
    DonationRecord, DonationStatus, User, UserType, DonationStats, LeaderboardEntry,
    DonorSummary, BloodGroupCount, UserStats, RequestStats
)
from .clock import Clock, utc_now
from .eligibility import days_since, cooldown_elapsed
from .errors import NotFound, Forbidden
from .request_service import RequestService


def donation_statistics(records: List[DonationRecord]) -> DonationStats:
    by_status = Counter(r.status for r in records)
    return DonationStats(
        total_donations=len(records),
        total_units=sum(r.units_contributed for r in records),
        total_points=sum(r.points for r in records),
        completed_donations=by_status[DonationStatus.COMPLETED],
        pending_donations=by_status[DonationStatus.PENDING],
        cancelled_donations=by_status[DonationStatus.CANCELLED]
    )


def leaderboard(records: List[DonationRecord], limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
    """Top donors by (points desc, donations desc) over completed records."""
    entries = OrderedDict()
    for record in records:
        if record.status != DonationStatus.COMPLETED:
            continue
        entry = entries.get(record.donor_id)
        if entry is None:
            entry = entries[record.donor_id] = LeaderboardEntry(
                donor_id=record.donor_id,
                name=record.donor_name,
                blood_group=record.blood_group,
                total_donations=0,
                total_units=0,
                total_points=0
            )
        entry.total_donations += 1
        entry.total_units += record.units_contributed
        entry.total_points += record.points
        if entry.last_donation is None or record.date > entry.last_donation:
            entry.last_donation = record.date

    ranked = sorted(entries.values(), key=lambda e: (-e.total_points, -e.total_donations))
    return ranked[:limit]


def donor_summary(records: List[DonationRecord], now: datetime, completed_only: bool = False,
                  cooldown_days: int = DONATION_COOLDOWN_DAYS) -> DonorSummary:
    """Totals over a single donor's records.

    Last donation, days since and ``can_donate`` always come from completed
    records, using the same cooldown as the donation recorder.
    """
    completed = [r for r in records if r.status == DonationStatus.COMPLETED]
    counted = completed if completed_only else records

    summary = DonorSummary(
        total_donations=len(counted),
        total_units=sum(r.units_contributed for r in counted),
        total_points=sum(r.points for r in counted),
        completed_donations=len(completed)
    )
    if counted:
        summary.average_points_per_donation = summary.total_points / len(counted)
    if completed:
        summary.first_donation = min(r.date for r in completed)
        summary.last_donation = max(r.date for r in completed)
    summary.days_since_last_donation = days_since(summary.last_donation, now)
    summary.can_donate = cooldown_elapsed(summary.last_donation, now, cooldown_days)
    return summary


def donor_blood_groups(users: List[User]) -> List[BloodGroupCount]:
    counts = Counter(u.blood_group for u in users if u.user_type == UserType.DONOR and u.blood_group)
    return [BloodGroupCount(blood_group=g, count=c) for g, c in counts.most_common()]


def donations_by_blood_group(records: List[DonationRecord]) -> List[BloodGroupCount]:
    groups = {}
    for record in records:
        if record.status != DonationStatus.COMPLETED:
            continue
        group = groups.setdefault(record.blood_group, BloodGroupCount(
            blood_group=record.blood_group, count=0, total_units=0, total_points=0
        ))
        group.count += 1
        group.total_units += record.units_contributed
        group.total_points += record.points
    return sorted(groups.values(), key=lambda g: -g.count)


def user_statistics(users: List[User]) -> UserStats:
    by_type = Counter(u.user_type for u in users)
    return UserStats(
        total_users=len(users),
        total_donors=by_type[UserType.DONOR],
        total_patients=by_type[UserType.PATIENT],
        total_hospitals=by_type[UserType.HOSPITAL],
        available_donors=sum(1 for u in users if u.user_type == UserType.DONOR and u.is_available),
        verified_users=sum(1 for u in users if u.is_verified),
        blood_group_distribution=donor_blood_groups(users)
    )


class StatsService:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utc_now,
                 cooldown_days: int = DONATION_COOLDOWN_DAYS):
        self.db = db
        self.clock = clock
        self.cooldown_days = cooldown_days

    async def _donations(self, query: Optional[dict] = None) -> List[DonationRecord]:
        docs = await self.db.donations.find(query or {}, {"_id": 0}).to_list(None)
        return [DonationRecord(**d) for d in docs]

    async def _users(self) -> List[User]:
        docs = await self.db.users.find({}, {"_id": 0}).to_list(None)
        return [User(**d) for d in docs]

    async def donation_stats(self) -> DonationStats:
        return donation_statistics(await self._donations())

    async def request_stats(self) -> RequestStats:
        return await RequestService(self.db, self.clock).get_statistics()

    async def leaderboard(self, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
        records = await self._donations({"status": DonationStatus.COMPLETED.value})
        return leaderboard(records, limit)

    async def donations_by_blood_group(self) -> List[BloodGroupCount]:
        records = await self._donations({"status": DonationStatus.COMPLETED.value})
        return donations_by_blood_group(records)

    async def user_stats(self) -> UserStats:
        return user_statistics(await self._users())

    async def user_summary(self, user_id: str) -> DonorSummary:
        user = await self.db.users.find_one({"id": user_id}, {"_id": 0, "id": 1})
        if not user:
            raise NotFound("User not found")
        records = await self._donations({"donor_id": user_id})
        return donor_summary(records, self.clock(), cooldown_days=self.cooldown_days)

    async def contribution_summary(self, user_id: str, actor_id: str) -> DonorSummary:
        if user_id != actor_id:
            raise Forbidden("Not authorized to view this user's contribution summary")
        records = await self._donations({"donor_id": user_id})
        return donor_summary(records, self.clock(), completed_only=True,
                             cooldown_days=self.cooldown_days)
