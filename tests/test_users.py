import pytest
from pydantic import ValidationError

from bloodbuddy.models import UserCreate
from bloodbuddy.services import NotFound, ValidationFailure
from tests.conftest import donor_data, hospital_data, donation_data


def test_donor_requires_blood_group_age_and_weight():
    with pytest.raises(ValidationError):
        donor_data(blood_group=None)
    with pytest.raises(ValidationError):
        donor_data(age=17)
    with pytest.raises(ValidationError):
        donor_data(weight=45)


def test_non_donor_has_no_blood_group():
    with pytest.raises(ValidationError):
        hospital_data(blood_group="A+")


def test_pincode_must_have_six_digits():
    with pytest.raises(ValidationError):
        UserCreate(**{**donor_data().model_dump(), "pincode": "5600"})


async def test_register_defaults(users):
    user = await users.register_user(donor_data(email="Asha@Example.com"))
    assert user.email == "asha@example.com"
    assert user.donation_count == 0
    assert user.is_available is True
    assert user.last_donation is None


async def test_duplicate_email_rejected(users, donor):
    with pytest.raises(ValidationFailure):
        await users.register_user(donor_data(email="ASHA@example.com"))


async def test_find_compatible_donors(users):
    a_pos = await users.register_user(donor_data(email="1@x.io", blood_group="A+"))
    o_neg = await users.register_user(donor_data(email="2@x.io", blood_group="O-"))
    o_pos = await users.register_user(donor_data(email="3@x.io", blood_group="O+"))
    a_neg = await users.register_user(donor_data(email="4@x.io", blood_group="A-"))
    await users.register_user(donor_data(email="5@x.io", blood_group="B+"))
    away = await users.register_user(donor_data(email="6@x.io", blood_group="A+"))
    await users.update_availability(away.id, False)

    found = await users.find_compatible_donors("A+")
    assert {u.id for u in found} == {a_pos.id, o_neg.id, o_pos.id}

    # Rh-negative recipients never get O+.
    found = await users.find_compatible_donors("A-")
    assert {u.id for u in found} == {a_neg.id, o_neg.id}


async def test_compatible_donors_ordering(users, db, clock):
    first = await users.register_user(donor_data(email="1@x.io", blood_group="O-"))
    clock.advance(days=1)
    second = await users.register_user(donor_data(email="2@x.io", blood_group="O-"))
    clock.advance(days=1)
    veteran = await users.register_user(donor_data(email="3@x.io", blood_group="O-"))
    await db.users.update_one({"id": veteran.id}, {"$set": {"donation_count": 4}})

    found = await users.find_compatible_donors("O-")
    assert [u.id for u in found] == [veteran.id, first.id, second.id]


async def test_compatible_donors_location_filters(users):
    await users.register_user(donor_data(email="1@x.io", city="Bengaluru", pincode="560001"))
    mysuru = await users.register_user(donor_data(email="2@x.io", city="Mysuru", pincode="570001"))
    assert [u.id for u in await users.find_compatible_donors("O+", city="mysuru")] == [mysuru.id]
    assert [u.id for u in await users.find_compatible_donors("O+", pincode="570001")] == [mysuru.id]


async def test_list_and_search_users(users, donor, hospital):
    listed, total = await users.list_users(user_type="donor")
    assert total == 1
    assert listed[0].id == donor.id

    listed, total = await users.list_users(is_available=True)
    assert total == 2

    found = await users.search_users("city hosp")
    assert [u.id for u in found] == [hospital.id]


async def test_delete_account_cascades(users, donations, donor, db):
    await donations.create_donation(donor.id, donation_data())
    removed = await users.delete_account(donor.id)
    assert removed == 1
    assert await db.donations.count_documents({"donor_id": donor.id}) == 0
    with pytest.raises(NotFound):
        await users.get_user(donor.id)


async def test_update_availability_unknown_user(users):
    with pytest.raises(NotFound):
        await users.update_availability("missing", True)
