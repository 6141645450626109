from datetime import timedelta

import pytest

from bloodbuddy.models import BloodRequest, RequestStatus, BloodRequestUpdate
from bloodbuddy.services import (
    InvalidState, Forbidden, NotFound, RequestService, time_remaining_hours
)
from tests.conftest import T0, request_data, donor_data, hospital_data


@pytest.mark.parametrize("urgency,ttl", [
    ("critical", timedelta(hours=24)),
    ("urgent", timedelta(hours=72)),
    ("normal", timedelta(days=7)),
])
async def test_expiry_matches_urgency_ttl(requests, hospital, urgency, ttl):
    request = await requests.create_request(hospital.id, request_data(urgency=urgency))
    assert request.expires_at - request.created_at == ttl
    assert request.status == RequestStatus.ACTIVE
    assert request.requester_name == "City Hospital"


async def test_donor_cannot_create_request(requests, donor):
    with pytest.raises(Forbidden):
        await requests.create_request(donor.id, request_data())


async def test_unknown_requester(requests):
    with pytest.raises(NotFound):
        await requests.create_request("missing", request_data())


async def test_critical_request_expires_lazily_on_read(requests, hospital, donor, clock, db):
    request = await requests.create_request(hospital.id, request_data(urgency="critical"))
    assert request.expires_at == T0 + timedelta(hours=24)

    clock.advance(hours=25)
    stored = await db.blood_requests.find_one({"id": request.id})
    assert stored["status"] == "active"

    reloaded = await requests.get_request(request.id)
    assert reloaded.status == RequestStatus.EXPIRED
    stored = await db.blood_requests.find_one({"id": request.id})
    assert stored["status"] == "expired"
    # expiry is never recomputed
    assert reloaded.expires_at == request.expires_at

    with pytest.raises(InvalidState):
        await requests.fulfill_request(request.id, donor.id)


async def test_request_still_active_at_exact_expiry(requests, hospital, clock):
    request = await requests.create_request(hospital.id, request_data(urgency="critical"))
    clock.advance(hours=24)
    assert (await requests.get_request(request.id)).status == RequestStatus.ACTIVE


async def test_fulfill_records_donor(requests, hospital, donor):
    request = await requests.create_request(hospital.id, request_data())
    fulfilled = await requests.fulfill_request(request.id, donor.id)
    assert fulfilled.status == RequestStatus.FULFILLED
    assert fulfilled.fulfilled_by == [donor.id]


@pytest.mark.parametrize("terminal", ["fulfilled", "expired", "cancelled"])
async def test_fulfill_from_terminal_state_fails(requests, hospital, donor, db, terminal):
    request = await requests.create_request(hospital.id, request_data())
    await db.blood_requests.update_one({"id": request.id}, {"$set": {"status": terminal}})
    with pytest.raises(InvalidState):
        await requests.fulfill_request(request.id, donor.id)
    assert (await requests.get_request(request.id)).status.value == terminal


async def test_fulfill_loses_race_with_stale_read(requests, hospital, donor, users, db, monkeypatch):
    request = await requests.create_request(hospital.id, request_data())
    second = await users.register_user(donor_data(email="second@example.com"))
    await requests.fulfill_request(request.id, donor.id)

    async def stale_read(request_id):
        return request

    monkeypatch.setattr(requests, "_load_active", stale_read)
    with pytest.raises(InvalidState):
        await requests.fulfill_request(request.id, second.id)

    stored = await db.blood_requests.find_one({"id": request.id})
    assert stored["fulfilled_by"] == [donor.id]


async def test_fulfill_unknown_request_or_donor(requests, hospital, donor):
    request = await requests.create_request(hospital.id, request_data())
    with pytest.raises(NotFound):
        await requests.fulfill_request("missing", donor.id)
    with pytest.raises(NotFound):
        await requests.fulfill_request(request.id, "missing")


async def test_register_donor_is_idempotent(requests, hospital, donor):
    request = await requests.create_request(hospital.id, request_data())
    await requests.register_donor(request.id, donor.id)
    await requests.register_donor(request.id, donor.id)
    assert (await requests.get_request(request.id)).fulfilled_by == [donor.id]


async def test_cancel_only_by_requester(requests, hospital, users):
    other = await users.register_user(hospital_data(email="other@hospital.example"))
    request = await requests.create_request(hospital.id, request_data())

    with pytest.raises(Forbidden):
        await requests.cancel_request(request.id, other.id)

    await requests.cancel_request(request.id, hospital.id)
    assert (await requests.get_request(request.id)).status == RequestStatus.CANCELLED

    with pytest.raises(InvalidState):
        await requests.cancel_request(request.id, hospital.id)


async def test_cancel_expired_request_fails(requests, hospital, clock):
    request = await requests.create_request(hospital.id, request_data(urgency="urgent"))
    clock.advance(hours=73)
    with pytest.raises(InvalidState):
        await requests.cancel_request(request.id, hospital.id)
    assert (await requests.get_request(request.id)).status == RequestStatus.EXPIRED


async def test_update_request(requests, hospital, donor):
    request = await requests.create_request(hospital.id, request_data())
    updated = await requests.update_request(
        request.id, hospital.id, BloodRequestUpdate(units_needed=4, description="Surgery at 6pm")
    )
    assert updated.units_needed == 4
    assert updated.description == "Surgery at 6pm"
    assert updated.expires_at == request.expires_at

    with pytest.raises(Forbidden):
        await requests.update_request(request.id, donor.id, BloodRequestUpdate(units_needed=1))

    await requests.fulfill_request(request.id, donor.id)
    with pytest.raises(InvalidState):
        await requests.update_request(request.id, hospital.id, BloodRequestUpdate(units_needed=1))


async def test_active_listing_order(requests, hospital, clock):
    normal_old = await requests.create_request(hospital.id, request_data(urgency="normal"))
    clock.advance(minutes=5)
    critical_old = await requests.create_request(hospital.id, request_data(urgency="critical"))
    clock.advance(minutes=5)
    urgent = await requests.create_request(hospital.id, request_data(urgency="urgent"))
    clock.advance(minutes=5)
    critical_new = await requests.create_request(hospital.id, request_data(urgency="critical"))

    listed, total = await requests.list_active_requests()
    assert total == 4
    assert [r.id for r in listed] == [critical_old.id, critical_new.id, urgent.id, normal_old.id]


async def test_active_listing_skips_expired_and_filters(requests, hospital, clock):
    await requests.create_request(hospital.id, request_data(urgency="critical", blood_group="B-"))
    normal = await requests.create_request(hospital.id, request_data(city="Mysuru"))
    clock.advance(hours=30)

    listed, total = await requests.list_active_requests()
    assert [r.id for r in listed] == [normal.id]

    listed, total = await requests.list_active_requests(city="mysu")
    assert total == 1
    listed, total = await requests.list_active_requests(blood_group="B-")
    assert total == 0


async def test_active_listing_pagination(requests, hospital, clock):
    for _ in range(5):
        await requests.create_request(hospital.id, request_data())
        clock.advance(seconds=1)
    page, total = await requests.list_active_requests(page=2, limit=2)
    assert total == 5
    assert len(page) == 2


async def test_search_requests(requests, hospital):
    await requests.create_request(hospital.id, request_data(patient_name="Meera Iyer"))
    await requests.create_request(hospital.id, request_data(hospital="St. John's", description="Dialysis"))
    assert len(await requests.search_requests("meera")) == 1
    assert len(await requests.search_requests("dialysis")) == 1
    assert len(await requests.search_requests("john")) == 1
    assert len(await requests.search_requests()) == 2


async def test_user_requests_newest_first(requests, hospital, clock):
    first = await requests.create_request(hospital.id, request_data())
    clock.advance(hours=1)
    second = await requests.create_request(hospital.id, request_data())
    listed, total = await requests.list_user_requests(hospital.id)
    assert total == 2
    assert [r.id for r in listed] == [second.id, first.id]


async def test_time_remaining(requests, hospital, clock):
    request = await requests.create_request(hospital.id, request_data(urgency="critical"))
    clock.advance(hours=1, minutes=30)
    assert time_remaining_hours(request, clock()) == 23
    clock.advance(hours=30)
    assert time_remaining_hours(request, clock()) == 0


async def test_request_statistics(requests, hospital, donor, clock):
    critical = await requests.create_request(hospital.id, request_data(urgency="critical"))
    urgent = await requests.create_request(hospital.id, request_data(urgency="urgent"))
    await requests.create_request(hospital.id, request_data(urgency="normal"))
    await requests.fulfill_request(urgent.id, donor.id)
    clock.advance(hours=25)

    stats = await requests.get_statistics()
    assert stats.total == 3
    assert stats.active == 1
    assert stats.fulfilled == 1
    assert stats.expired == 1
    assert stats.cancelled == 0
    assert (stats.critical, stats.urgent, stats.normal) == (1, 1, 1)
    # statistics are a read-only view
    assert (await requests._load(critical.id)).status == RequestStatus.ACTIVE


async def test_custom_ttl_table(db, clock, hospital):
    service = RequestService(db, clock, ttl={"critical": timedelta(hours=6),
                                             "urgent": timedelta(hours=12),
                                             "normal": timedelta(days=1)})
    request = await service.create_request(hospital.id, request_data(urgency="critical"))
    assert request.expires_at == T0 + timedelta(hours=6)


async def test_only_donors_fulfill(requests, hospital, users, db):
    request = await requests.create_request(hospital.id, request_data())
    patient = await users.register_user(hospital_data(email="p@example.com", user_type="patient"))

    for actor in (hospital, patient):
        with pytest.raises(Forbidden):
            await requests.fulfill_request(request.id, actor.id)

    stored = await db.blood_requests.find_one({"id": request.id})
    assert stored["status"] == "active"
    assert stored["fulfilled_by"] == []


def test_can_be_fulfilled_until_expiry():
    request = BloodRequest(**request_data().model_dump(), requester_id="h", requester_name="H",
                           expires_at=T0 + timedelta(hours=24), created_at=T0)
    assert request.can_be_fulfilled(T0 + timedelta(hours=24))
    assert not request.can_be_fulfilled(T0 + timedelta(hours=25))
    assert not request.model_copy(update={"status": RequestStatus.CANCELLED}).can_be_fulfilled(T0)
