"""
Blood Request Lifecycle
Owns the request state machine: creation with an urgency-derived expiry,
lazy expiry on access, fulfillment, cancellation and requester edits.

Transitions out of ``active`` are written with the expected prior status in
the update filter, so two callers racing on the same request cannot both win.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from bloodbuddy.config import REQUEST_TTL, URGENCY_RANK, DEFAULT_PAGE_SIZE, SEARCH_RESULT_LIMIT
from bloodbuddy.models import (
    BloodRequest, BloodRequestCreate, BloodRequestUpdate, RequestStatus, UrgencyLevel,
    UserType, BloodGroup, RequestStats, to_document, to_storage
)
from .clock import Clock, utc_now
from .errors import NotFound, Forbidden, InvalidState
from .query import icontains

logger = logging.getLogger(__name__)

REQUESTER_TYPES = (UserType.PATIENT, UserType.HOSPITAL)


def compute_expiry(urgency: UrgencyLevel, created_at: datetime,
                   ttl: Dict[str, timedelta] = REQUEST_TTL) -> datetime:
    return created_at + ttl[UrgencyLevel(urgency).value]


def time_remaining_hours(request: BloodRequest, now: datetime) -> Optional[int]:
    if request.status != RequestStatus.ACTIVE:
        return None
    seconds_left = (request.expires_at - now).total_seconds()
    if seconds_left <= 0:
        return 0
    return math.ceil(seconds_left / 3600)


def active_queue_order(requests: List[BloodRequest]) -> List[BloodRequest]:
    """Most urgent first, oldest first within an urgency tier."""
    return sorted(
        requests,
        key=lambda r: (-URGENCY_RANK[r.urgency.value], r.created_at)
    )


def request_statistics(requests: List[BloodRequest], now: datetime) -> RequestStats:
    stats = RequestStats(total=len(requests))
    for request in requests:
        status = request.status
        if status == RequestStatus.ACTIVE and request.is_expired(now):
            status = RequestStatus.EXPIRED
        setattr(stats, status.value, getattr(stats, status.value) + 1)
        setattr(stats, request.urgency.value, getattr(stats, request.urgency.value) + 1)
    return stats


class RequestService:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utc_now,
                 ttl: Dict[str, timedelta] = REQUEST_TTL):
        self.db = db
        self.clock = clock
        self.ttl = ttl

    async def _load(self, request_id: str) -> BloodRequest:
        doc = await self.db.blood_requests.find_one({"id": request_id}, {"_id": 0})
        if not doc:
            raise NotFound("Blood request not found")
        return BloodRequest(**doc)

    async def reconcile(self, request: BloodRequest) -> BloodRequest:
        """Flip an active request whose expiry has passed to ``expired``."""
        now = self.clock()
        if request.status != RequestStatus.ACTIVE or not request.is_expired(now):
            return request

        doc = await self.db.blood_requests.find_one_and_update(
            {"id": request.id, "status": RequestStatus.ACTIVE.value},
            {"$set": {"status": RequestStatus.EXPIRED.value, "updated_at": to_storage(now)}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            # Another writer moved it first; report what is stored now.
            return await self._load(request.id)
        logger.info("Blood request %s expired at %s", request.id, request.expires_at.isoformat())
        return BloodRequest(**doc)

    async def get_request(self, request_id: str) -> BloodRequest:
        return await self.reconcile(await self._load(request_id))

    async def _load_active(self, request_id: str) -> BloodRequest:
        request = await self.get_request(request_id)
        if not request.can_be_fulfilled(self.clock()):
            raise InvalidState(f"Blood request is {request.status.value}")
        return request

    async def create_request(self, requester_id: str, data: BloodRequestCreate) -> BloodRequest:
        requester = await self.db.users.find_one({"id": requester_id}, {"_id": 0})
        if not requester:
            raise NotFound("Requester not found")
        if requester["user_type"] not in [t.value for t in REQUESTER_TYPES]:
            raise Forbidden("Only patients and hospitals can create blood requests")

        now = self.clock()
        request = BloodRequest(
            **data.model_dump(),
            requester_id=requester_id,
            requester_name=requester["name"],
            expires_at=compute_expiry(data.urgency, now, self.ttl),
            created_at=now,
            updated_at=now
        )
        await self.db.blood_requests.insert_one(to_document(request))
        logger.debug("Blood request %s created (%s, expires %s)",
                     request.id, request.urgency.value, request.expires_at.isoformat())
        return request

    async def update_request(self, request_id: str, actor_id: str,
                             updates: BloodRequestUpdate) -> BloodRequest:
        request = await self._load(request_id)
        if request.requester_id != actor_id:
            raise Forbidden("Not authorized to update this request")
        request = await self.reconcile(request)
        if request.status != RequestStatus.ACTIVE:
            raise InvalidState("Cannot update non-active requests")

        changes = to_storage(updates.model_dump(exclude_unset=True, exclude_none=True))
        if not changes:
            return request
        changes["updated_at"] = to_storage(self.clock())

        doc = await self.db.blood_requests.find_one_and_update(
            {"id": request_id, "status": RequestStatus.ACTIVE.value},
            {"$set": changes},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise InvalidState("Blood request is no longer active")
        return BloodRequest(**doc)

    async def cancel_request(self, request_id: str, actor_id: str) -> None:
        request = await self._load(request_id)
        if request.requester_id != actor_id:
            raise Forbidden("Not authorized to cancel this request")
        request = await self.reconcile(request)
        if request.status != RequestStatus.ACTIVE:
            raise InvalidState("Cannot cancel non-active requests")

        doc = await self.db.blood_requests.find_one_and_update(
            {"id": request_id, "status": RequestStatus.ACTIVE.value},
            {"$set": {"status": RequestStatus.CANCELLED.value, "updated_at": to_storage(self.clock())}},
            projection={"_id": 0}
        )
        if doc is None:
            raise InvalidState("Blood request is no longer active")

    async def fulfill_request(self, request_id: str, donor_id: str) -> BloodRequest:
        donor = await self.db.users.find_one({"id": donor_id}, {"_id": 0, "user_type": 1})
        if not donor:
            raise NotFound("Donor not found")
        if donor["user_type"] != UserType.DONOR.value:
            raise Forbidden("Only donors can fulfill blood requests")
        await self._load_active(request_id)

        doc = await self.db.blood_requests.find_one_and_update(
            {"id": request_id, "status": RequestStatus.ACTIVE.value},
            {
                "$set": {"status": RequestStatus.FULFILLED.value, "updated_at": to_storage(self.clock())},
                "$addToSet": {"fulfilled_by": donor_id}
            },
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise InvalidState("Blood request is no longer active")
        logger.info("Blood request %s fulfilled by donor %s", request_id, donor_id)
        return BloodRequest(**doc)

    async def register_donor(self, request_id: str, donor_id: str) -> None:
        """Add a donor to the request's fulfilling set. Re-adding is a no-op."""
        await self.db.blood_requests.update_one(
            {"id": request_id},
            {"$addToSet": {"fulfilled_by": donor_id}}
        )

    async def _active_candidates(self, query: dict) -> List[BloodRequest]:
        query["status"] = RequestStatus.ACTIVE.value
        docs = await self.db.blood_requests.find(query, {"_id": 0}).to_list(None)
        now = self.clock()
        return active_queue_order(
            [r for r in (BloodRequest(**d) for d in docs) if not r.is_expired(now)]
        )

    async def list_active_requests(
        self,
        blood_group: Optional[BloodGroup] = None,
        urgency: Optional[UrgencyLevel] = None,
        city: Optional[str] = None,
        pincode: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[BloodRequest], int]:
        query = {}
        if blood_group:
            query["blood_group"] = BloodGroup(blood_group).value
        if urgency:
            query["urgency"] = UrgencyLevel(urgency).value
        if city:
            query["city"] = icontains(city)
        if pincode:
            query["pincode"] = pincode

        requests = await self._active_candidates(query)
        skip = (page - 1) * limit
        return requests[skip:skip + limit], len(requests)

    async def search_requests(
        self,
        q: Optional[str] = None,
        blood_group: Optional[BloodGroup] = None,
        city: Optional[str] = None,
        urgency: Optional[UrgencyLevel] = None
    ) -> List[BloodRequest]:
        query = {}
        if q:
            query["$or"] = [
                {"patient_name": icontains(q)},
                {"hospital": icontains(q)},
                {"description": icontains(q)}
            ]
        if blood_group:
            query["blood_group"] = BloodGroup(blood_group).value
        if city:
            query["city"] = icontains(city)
        if urgency:
            query["urgency"] = UrgencyLevel(urgency).value

        requests = await self._active_candidates(query)
        return requests[:SEARCH_RESULT_LIMIT]

    async def list_user_requests(self, user_id: str, page: int = 1,
                                 limit: int = DEFAULT_PAGE_SIZE) -> Tuple[List[BloodRequest], int]:
        query = {"requester_id": user_id}
        total = await self.db.blood_requests.count_documents(query)
        docs = await self.db.blood_requests.find(query, {"_id": 0}) \
            .sort("created_at", -1).skip((page - 1) * limit).limit(limit).to_list(limit)
        requests = [await self.reconcile(BloodRequest(**d)) for d in docs]
        return requests, total

    async def get_statistics(self) -> RequestStats:
        docs = await self.db.blood_requests.find({}, {"_id": 0}).to_list(None)
        return request_statistics([BloodRequest(**d) for d in docs], self.clock())
