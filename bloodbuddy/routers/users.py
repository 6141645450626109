from fastapi import APIRouter, Depends, Request, Query
from typing import Optional

from bloodbuddy.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from bloodbuddy.models import (
    UserCreate, UserResponse, AvailabilityUpdate, UserType, BloodGroup, AuditAction, AuditModule
)
from bloodbuddy.services import (
    get_current_user, get_user_service, get_donation_service, get_stats_service, get_audit_service,
    UserService, DonationService, StatsService, AuditService
)
from . import ok, paginated

router = APIRouter(prefix="/users", tags=["Users"])


def public(user) -> UserResponse:
    return UserResponse(**user.model_dump())


@router.post("", status_code=201)
async def register_user(
    data: UserCreate,
    http_request: Request,
    service: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service)
):
    user = await service.register_user(data)
    await audit.log_create(AuditModule.USERS, user.model_dump(mode="json"), user.id, "user",
                           data.model_dump(mode="json"), request=http_request)
    return ok("User registered successfully", public(user))


@router.get("/donors/available")
async def get_available_donors(
    blood_group: BloodGroup,
    city: Optional[str] = None,
    pincode: Optional[str] = None,
    service: UserService = Depends(get_user_service)
):
    donors = await service.find_compatible_donors(blood_group, city, pincode)
    return ok("Available donors retrieved successfully", [public(d) for d in donors])


@router.get("/stats")
async def get_user_stats(stats: StatsService = Depends(get_stats_service)):
    return ok("User statistics retrieved successfully", await stats.user_stats())


@router.get("/search")
async def search_users(
    q: Optional[str] = None,
    user_type: Optional[UserType] = None,
    blood_group: Optional[BloodGroup] = None,
    city: Optional[str] = None,
    service: UserService = Depends(get_user_service)
):
    users = await service.search_users(q, user_type, blood_group, city)
    return ok("Search results retrieved successfully", [public(u) for u in users])


@router.put("/availability")
async def update_user_availability(
    data: AvailabilityUpdate,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service)
):
    user = await service.update_availability(current_user["id"], data.is_available)
    await audit.log(AuditAction.UPDATE, AuditModule.USERS, current_user,
                    record_id=user.id, record_type="user",
                    old_values={"is_available": current_user.get("is_available")},
                    new_values={"is_available": data.is_available},
                    request=http_request)
    return ok("User availability updated successfully", public(user))


@router.delete("/account")
async def delete_user_account(
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
    audit: AuditService = Depends(get_audit_service)
):
    removed = await service.delete_account(current_user["id"])
    await audit.log(AuditAction.DELETE, AuditModule.USERS, current_user,
                    record_id=current_user["id"], record_type="user",
                    description=f"Deleted user {current_user['id']}",
                    metadata={"donation_records_removed": removed},
                    request=http_request)
    return ok("User account deleted successfully")


@router.get("")
async def get_users(
    user_type: Optional[UserType] = None,
    blood_group: Optional[BloodGroup] = None,
    city: Optional[str] = None,
    pincode: Optional[str] = None,
    is_available: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    users, total = await service.list_users(user_type, blood_group, city, pincode, is_available, page, limit)
    return paginated("Users retrieved successfully", [public(u) for u in users], page, limit, total)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return ok("User retrieved successfully", public(await service.get_user(user_id)))


@router.get("/{user_id}/donations")
async def get_user_donation_history(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    records = await service.donation_history(user_id, current_user["id"])
    return ok("User donation history retrieved successfully", records)


@router.get("/{user_id}/contributions")
async def get_user_contribution_summary(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    stats: StatsService = Depends(get_stats_service)
):
    summary = await stats.contribution_summary(user_id, current_user["id"])
    return ok("User contribution summary retrieved successfully", summary)
