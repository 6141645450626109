"""
Users and donor matching.
"""
import logging
from typing import Optional, List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from bloodbuddy.config import DEFAULT_PAGE_SIZE, SEARCH_RESULT_LIMIT
from bloodbuddy.models import User, UserCreate, UserType, BloodGroup, to_document, to_storage
from .clock import Clock, utc_now
from .compatibility import compatible_donors
from .errors import NotFound, ValidationFailure
from .query import icontains

logger = logging.getLogger(__name__)

# Most active donors first, then earliest registered.
DONOR_ORDER = [("donation_count", -1), ("created_at", 1)]


class UserService:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    async def register_user(self, data: UserCreate) -> User:
        email = data.email.strip().lower()
        existing = await self.db.users.find_one({"email": email}, {"_id": 0, "id": 1})
        if existing:
            raise ValidationFailure("Email already registered")

        now = self.clock()
        user = User(**data.model_dump(exclude={"email"}), email=email, created_at=now, updated_at=now)
        await self.db.users.insert_one(to_document(user))
        logger.debug("Registered %s %s", user.user_type.value, user.id)
        return user

    async def get_user(self, user_id: str) -> User:
        doc = await self.db.users.find_one({"id": user_id}, {"_id": 0})
        if not doc:
            raise NotFound("User not found")
        return User(**doc)

    async def update_availability(self, user_id: str, is_available: bool) -> User:
        doc = await self.db.users.find_one_and_update(
            {"id": user_id},
            {"$set": {"is_available": is_available, "updated_at": to_storage(self.clock())}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("User not found")
        return User(**doc)

    async def delete_account(self, user_id: str) -> int:
        """Delete a user and their donation records. Returns records removed."""
        await self.get_user(user_id)
        result = await self.db.donations.delete_many({"donor_id": user_id})
        await self.db.users.delete_one({"id": user_id})
        logger.info("Deleted user %s and %d donation record(s)", user_id, result.deleted_count)
        return result.deleted_count

    async def find_compatible_donors(
        self,
        blood_group: BloodGroup,
        city: Optional[str] = None,
        pincode: Optional[str] = None
    ) -> List[User]:
        query = {
            "user_type": UserType.DONOR.value,
            "is_available": True,
            "blood_group": {"$in": sorted(g.value for g in compatible_donors(blood_group))}
        }
        if city:
            query["city"] = icontains(city)
        if pincode:
            query["pincode"] = pincode

        docs = await self.db.users.find(query, {"_id": 0}).sort(DONOR_ORDER).to_list(None)
        return [User(**d) for d in docs]

    async def list_users(
        self,
        user_type: Optional[UserType] = None,
        blood_group: Optional[BloodGroup] = None,
        city: Optional[str] = None,
        pincode: Optional[str] = None,
        is_available: Optional[bool] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[User], int]:
        query = {}
        if user_type:
            query["user_type"] = UserType(user_type).value
        if blood_group:
            query["blood_group"] = BloodGroup(blood_group).value
        if city:
            query["city"] = icontains(city)
        if pincode:
            query["pincode"] = pincode
        if is_available is not None:
            query["is_available"] = is_available

        total = await self.db.users.count_documents(query)
        docs = await self.db.users.find(query, {"_id": 0}).sort(DONOR_ORDER) \
            .skip((page - 1) * limit).limit(limit).to_list(limit)
        return [User(**d) for d in docs], total

    async def search_users(
        self,
        q: Optional[str] = None,
        user_type: Optional[UserType] = None,
        blood_group: Optional[BloodGroup] = None,
        city: Optional[str] = None
    ) -> List[User]:
        query = {}
        if q:
            query["$or"] = [
                {"name": icontains(q)},
                {"email": icontains(q)},
                {"city": icontains(q)}
            ]
        if user_type:
            query["user_type"] = UserType(user_type).value
        if blood_group:
            query["blood_group"] = BloodGroup(blood_group).value
        if city:
            query["city"] = icontains(city)

        docs = await self.db.users.find(query, {"_id": 0}).sort(DONOR_ORDER) \
            .limit(SEARCH_RESULT_LIMIT).to_list(SEARCH_RESULT_LIMIT)
        return [User(**d) for d in docs]
