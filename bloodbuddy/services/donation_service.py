"""
Donation Recorder
Creates donation records, prices them and, on completion, moves the donor's
aggregate counters. Completion is the only path that touches
``donation_count`` and ``last_donation``.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from bloodbuddy.config import DONATION_COOLDOWN_DAYS, DEFAULT_PAGE_SIZE
from bloodbuddy.models import (
    DonationRecord, DonationCreate, DonationUpdate, DonationStatus, BloodGroup,
    User, to_document, to_storage
)
from .clock import Clock, utc_now
from .eligibility import ineligibility_reason
from .errors import NotFound, Forbidden, InvalidState, IneligibleDonor, ValidationFailure
from .points import calculate_points
from .query import icontains
from .request_service import RequestService

logger = logging.getLogger(__name__)


class DonationService:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utc_now,
                 cooldown_days: int = DONATION_COOLDOWN_DAYS,
                 requests: Optional[RequestService] = None):
        self.db = db
        self.clock = clock
        self.cooldown_days = cooldown_days
        self.requests = requests or RequestService(db, clock)

    async def _load(self, record_id: str) -> DonationRecord:
        doc = await self.db.donations.find_one({"id": record_id}, {"_id": 0})
        if not doc:
            raise NotFound("Donation record not found")
        return DonationRecord(**doc)

    async def get_donation(self, record_id: str) -> DonationRecord:
        return await self._load(record_id)

    async def _transition_pending(self, record_id: str, changes: dict) -> DonationRecord:
        """Apply ``changes`` only if the record is still pending."""
        doc = await self.db.donations.find_one_and_update(
            {"id": record_id, "status": DonationStatus.PENDING.value},
            {"$set": changes},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            current = await self._load(record_id)
            raise InvalidState(f"Donation is {current.status.value}, not pending")
        return DonationRecord(**doc)

    async def create_donation(self, donor_id: str, data: DonationCreate) -> DonationRecord:
        donor_doc = await self.db.users.find_one({"id": donor_id}, {"_id": 0})
        if not donor_doc:
            raise NotFound("Donor not found")
        donor = User(**donor_doc)

        now = self.clock()
        reason = ineligibility_reason(donor, now, self.cooldown_days)
        if reason:
            raise IneligibleDonor(reason)
        if data.blood_group is not None and data.blood_group != donor.blood_group:
            raise ValidationFailure("Blood group does not match the donor's registered group")
        self._check_date(data.date, now)
        if data.request_id:
            # Existence only; fulfillable state is checked by fulfill_request.
            await self.requests.get_request(data.request_id)

        record = DonationRecord(
            donor_id=donor.id,
            donor_name=donor.name,
            blood_group=donor.blood_group,
            request_id=data.request_id,
            date=data.date or now,
            hospital=data.hospital,
            city=data.city,
            units_contributed=data.units_contributed,
            points=calculate_points(data.units_contributed, data.request_id),
            notes=data.notes,
            created_at=now,
            updated_at=now
        )
        await self.db.donations.insert_one(to_document(record))

        if record.request_id:
            await self.requests.register_donor(record.request_id, donor.id)
        return record

    async def update_donation(self, record_id: str, actor_id: str,
                              updates: DonationUpdate) -> DonationRecord:
        record = await self._load(record_id)
        if record.donor_id != actor_id:
            raise Forbidden("Not authorized to update this donation record")
        if record.status != DonationStatus.PENDING:
            raise InvalidState(f"Cannot update {record.status.value} donations")

        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return record
        self._check_date(changes.get("date"), self.clock())
        if "units_contributed" in changes and changes["units_contributed"] != record.units_contributed:
            changes["points"] = calculate_points(changes["units_contributed"], record.request_id)
        changes["updated_at"] = self.clock()
        return await self._transition_pending(record_id, to_storage(changes))

    async def complete_donation(self, record_id: str, actor_id: str) -> DonationRecord:
        record = await self._load(record_id)
        await self._check_completer(record, actor_id)
        if record.status != DonationStatus.PENDING:
            raise InvalidState("Donation is not pending")

        now = self.clock()
        completed = await self._transition_pending(record_id, {
            "status": DonationStatus.COMPLETED.value,
            "completed_at": to_storage(now),
            "updated_at": to_storage(now)
        })

        # Only the caller that won the pending -> completed flip gets here.
        try:
            result = await self.db.users.update_one(
                {"id": completed.donor_id, **self._cooldown_filter(completed.date)},
                {
                    "$inc": {"donation_count": 1},
                    "$set": {"last_donation": to_storage(completed.date), "updated_at": to_storage(now)}
                }
            )
            if result.matched_count == 0:
                raise await self._counter_update_failure(completed)
        except Exception:
            await self.db.donations.update_one(
                {"id": record_id, "status": DonationStatus.COMPLETED.value},
                {"$set": {"status": DonationStatus.PENDING.value, "completed_at": None,
                          "updated_at": to_storage(record.updated_at)}}
            )
            raise

        logger.info("Donation %s completed for donor %s", record_id, completed.donor_id)
        return completed

    def _check_date(self, date: Optional[datetime], now: datetime):
        if date is not None and date > now:
            raise ValidationFailure("Donation date cannot be in the future")

    def _cooldown_filter(self, date: datetime) -> dict:
        """Match a donor whose last completed donation is at least one
        cooldown before ``date``, so ``last_donation`` only moves forward."""
        latest_allowed = date - timedelta(days=self.cooldown_days)
        return {"$or": [
            {"last_donation": None},
            {"last_donation": {"$lte": to_storage(latest_allowed)}}
        ]}

    async def _counter_update_failure(self, record: DonationRecord) -> Exception:
        donor = await self.db.users.find_one({"id": record.donor_id}, {"_id": 0, "last_donation": 1})
        if not donor:
            return NotFound("Donor not found")
        return IneligibleDonor(
            f"Donations must be at least {self.cooldown_days} days apart; "
            f"last completed donation was {donor.get('last_donation')}"
        )

    async def _check_completer(self, record: DonationRecord, actor_id: str):
        """The donor, or the requester of the linked blood request, may complete."""
        if record.donor_id == actor_id:
            return
        if record.request_id:
            request = await self.db.blood_requests.find_one(
                {"id": record.request_id}, {"_id": 0, "requester_id": 1}
            )
            if request and request.get("requester_id") == actor_id:
                return
        raise Forbidden("Not authorized to complete this donation")

    async def cancel_donation(self, record_id: str, actor_id: str) -> None:
        record = await self._load(record_id)
        if record.donor_id != actor_id:
            raise Forbidden("Not authorized to cancel this donation")
        if record.status != DonationStatus.PENDING:
            raise InvalidState(f"Cannot cancel {record.status.value} donations")
        await self._transition_pending(record_id, {
            "status": DonationStatus.CANCELLED.value,
            "updated_at": to_storage(self.clock())
        })

    async def list_donations(
        self,
        status: Optional[DonationStatus] = None,
        blood_group: Optional[BloodGroup] = None,
        city: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[DonationRecord], int]:
        query = {}
        if status:
            query["status"] = DonationStatus(status).value
        if blood_group:
            query["blood_group"] = BloodGroup(blood_group).value
        if city:
            query["city"] = icontains(city)
        return await self._page(query, page, limit)

    async def list_user_donations(self, user_id: str, page: int = 1,
                                  limit: int = DEFAULT_PAGE_SIZE) -> Tuple[List[DonationRecord], int]:
        return await self._page({"donor_id": user_id}, page, limit)

    async def donation_history(self, user_id: str, actor_id: str) -> List[DonationRecord]:
        if user_id != actor_id:
            raise Forbidden("Not authorized to view this user's donation history")
        docs = await self.db.donations.find({"donor_id": user_id}, {"_id": 0}) \
            .sort("date", -1).to_list(None)
        return [DonationRecord(**d) for d in docs]

    async def _page(self, query: dict, page: int, limit: int) -> Tuple[List[DonationRecord], int]:
        total = await self.db.donations.count_documents(query)
        docs = await self.db.donations.find(query, {"_id": 0}) \
            .sort("date", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
        return [DonationRecord(**d) for d in docs], total
