from datetime import datetime, timedelta, timezone

import pytest
from mongomock_motor import AsyncMongoMockClient

from bloodbuddy.models import UserCreate, BloodRequestCreate, DonationCreate
from bloodbuddy.services import RequestService, DonationService, UserService, StatsService

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    return AsyncMongoMockClient()["bloodbuddy_test"]


@pytest.fixture
def users(db, clock):
    return UserService(db, clock)


@pytest.fixture
def requests(db, clock):
    return RequestService(db, clock)


@pytest.fixture
def donations(db, clock, requests):
    return DonationService(db, clock, requests=requests)


@pytest.fixture
def stats(db, clock):
    return StatsService(db, clock)


def donor_data(**overrides) -> UserCreate:
    data = dict(
        name="Asha Rao", email="asha@example.com", user_type="donor", blood_group="O+",
        phone="+91 98450 00001", city="Bengaluru", pincode="560001", age=29, weight=62
    )
    data.update(overrides)
    return UserCreate(**data)


def hospital_data(**overrides) -> UserCreate:
    data = dict(
        name="City Hospital", email="desk@cityhospital.example", user_type="hospital",
        phone="080-2222-3333", city="Bengaluru", pincode="560002"
    )
    data.update(overrides)
    return UserCreate(**data)


def request_data(**overrides) -> BloodRequestCreate:
    data = dict(
        patient_name="R. Kumar", blood_group="A+", urgency="normal", hospital="City Hospital",
        city="Bengaluru", pincode="560002", units_needed=2, contact_phone="080-2222-3333"
    )
    data.update(overrides)
    return BloodRequestCreate(**data)


def donation_data(**overrides) -> DonationCreate:
    data = dict(hospital="City Hospital", city="Bengaluru", units_contributed=1)
    data.update(overrides)
    return DonationCreate(**data)


@pytest.fixture
async def donor(users):
    return await users.register_user(donor_data())


@pytest.fixture
async def hospital(users):
    return await users.register_user(hospital_data())
