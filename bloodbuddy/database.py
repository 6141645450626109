from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from bloodbuddy.config import MONGO_URL, DB_NAME

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase):
    await database.users.create_index("id", unique=True)
    await database.users.create_index("email", unique=True)
    await database.users.create_index([("user_type", 1), ("blood_group", 1)])
    await database.users.create_index([("city", 1), ("pincode", 1)])
    await database.blood_requests.create_index("id", unique=True)
    await database.blood_requests.create_index([("status", 1), ("urgency", 1)])
    await database.blood_requests.create_index("requester_id")
    await database.blood_requests.create_index("expires_at")
    await database.donations.create_index("id", unique=True)
    await database.donations.create_index([("donor_id", 1), ("date", -1)])
    await database.donations.create_index("request_id")
    await database.donations.create_index("status")
