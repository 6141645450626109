from fastapi import APIRouter, Depends, Request, Query
from typing import Optional

from bloodbuddy.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from bloodbuddy.models import (
    BloodRequestCreate, BloodRequestUpdate, BloodGroup, UrgencyLevel, RequestStatus,
    AuditAction, AuditModule
)
from bloodbuddy.services import (
    get_current_user, get_request_service, get_user_service, get_audit_service,
    RequestService, UserService, AuditService, time_remaining_hours
)
from . import ok, paginated

router = APIRouter(prefix="/requests", tags=["Blood Requests"])


def with_time_remaining(request, service: RequestService) -> dict:
    data = request.model_dump()
    data["time_remaining"] = time_remaining_hours(request, service.clock())
    return data


@router.get("")
async def get_blood_requests(
    blood_group: Optional[BloodGroup] = None,
    urgency: Optional[UrgencyLevel] = None,
    city: Optional[str] = None,
    pincode: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: RequestService = Depends(get_request_service)
):
    requests, total = await service.list_active_requests(blood_group, urgency, city, pincode, page, limit)
    items = [with_time_remaining(r, service) for r in requests]
    return paginated("Blood requests retrieved successfully", items, page, limit, total)


@router.get("/search")
async def search_blood_requests(
    q: Optional[str] = None,
    blood_group: Optional[BloodGroup] = None,
    city: Optional[str] = None,
    urgency: Optional[UrgencyLevel] = None,
    service: RequestService = Depends(get_request_service)
):
    requests = await service.search_requests(q, blood_group, city, urgency)
    return ok("Search results retrieved successfully", requests)


@router.get("/stats")
async def get_blood_request_stats(service: RequestService = Depends(get_request_service)):
    return ok("Statistics retrieved successfully", await service.get_statistics())


@router.get("/mine")
async def get_my_blood_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: dict = Depends(get_current_user),
    service: RequestService = Depends(get_request_service)
):
    requests, total = await service.list_user_requests(current_user["id"], page, limit)
    return paginated("User blood requests retrieved successfully", requests, page, limit, total)


@router.get("/{request_id}")
async def get_blood_request(request_id: str, service: RequestService = Depends(get_request_service)):
    request = await service.get_request(request_id)
    return ok("Blood request retrieved successfully", with_time_remaining(request, service))


@router.get("/{request_id}/donors")
async def get_compatible_donors(
    request_id: str,
    requests: RequestService = Depends(get_request_service),
    users: UserService = Depends(get_user_service)
):
    request = await requests.get_request(request_id)
    donors = await users.find_compatible_donors(request.blood_group, request.city, request.pincode)
    return ok("Compatible donors retrieved successfully", donors)


@router.post("", status_code=201)
async def create_blood_request(
    data: BloodRequestCreate,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: RequestService = Depends(get_request_service),
    audit: AuditService = Depends(get_audit_service)
):
    request = await service.create_request(current_user["id"], data)
    await audit.log_create(AuditModule.REQUESTS, current_user, request.id, "blood_request",
                           data.model_dump(mode="json"), request=http_request)
    return ok("Blood request created successfully", request)


@router.put("/{request_id}")
async def update_blood_request(
    request_id: str,
    updates: BloodRequestUpdate,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: RequestService = Depends(get_request_service),
    audit: AuditService = Depends(get_audit_service)
):
    request = await service.update_request(request_id, current_user["id"], updates)
    await audit.log(AuditAction.UPDATE, AuditModule.REQUESTS, current_user,
                    record_id=request_id, record_type="blood_request",
                    new_values=updates.model_dump(mode="json", exclude_unset=True),
                    request=http_request)
    return ok("Blood request updated successfully", request)


@router.patch("/{request_id}/fulfill")
async def fulfill_blood_request(
    request_id: str,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: RequestService = Depends(get_request_service),
    audit: AuditService = Depends(get_audit_service)
):
    request = await service.fulfill_request(request_id, current_user["id"])
    await audit.log_transition(AuditAction.FULFILL, AuditModule.REQUESTS, current_user,
                               request_id, "blood_request", RequestStatus.ACTIVE.value,
                               request.status.value, request=http_request)
    return ok("Request marked as fulfilled", request)


@router.patch("/{request_id}/cancel")
async def cancel_blood_request(
    request_id: str,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: RequestService = Depends(get_request_service),
    audit: AuditService = Depends(get_audit_service)
):
    await service.cancel_request(request_id, current_user["id"])
    await audit.log_transition(AuditAction.CANCEL, AuditModule.REQUESTS, current_user,
                               request_id, "blood_request", RequestStatus.ACTIVE.value,
                               RequestStatus.CANCELLED.value, request=http_request)
    return ok("Blood request cancelled successfully")
