from fastapi import APIRouter, Depends, Request, Query
from typing import Optional

from bloodbuddy.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, DEFAULT_LEADERBOARD_LIMIT
from bloodbuddy.models import (
    DonationCreate, DonationUpdate, DonationStatus, BloodGroup, AuditAction, AuditModule
)
from bloodbuddy.services import (
    get_current_user, get_donation_service, get_stats_service, get_audit_service,
    DonationService, StatsService, AuditService
)
from . import ok, paginated

router = APIRouter(prefix="/donations", tags=["Donations"])


@router.get("/stats")
async def get_donation_stats(stats: StatsService = Depends(get_stats_service)):
    return ok("Donation statistics retrieved successfully", await stats.donation_stats())


@router.get("/leaderboard")
async def get_top_donors(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_PAGE_SIZE),
    stats: StatsService = Depends(get_stats_service)
):
    return ok("Top donors retrieved successfully", await stats.leaderboard(limit))


@router.get("/blood-groups")
async def get_donations_by_blood_group(stats: StatsService = Depends(get_stats_service)):
    return ok("Donations by blood group retrieved successfully", await stats.donations_by_blood_group())


@router.post("", status_code=201)
async def create_donation_record(
    data: DonationCreate,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    audit: AuditService = Depends(get_audit_service)
):
    record = await service.create_donation(current_user["id"], data)
    await audit.log_create(AuditModule.DONATIONS, current_user, record.id, "donation",
                           data.model_dump(mode="json"), request=http_request)
    return ok("Donation record created successfully", record)


@router.get("/mine")
async def get_my_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    records, total = await service.list_user_donations(current_user["id"], page, limit)
    return paginated("User donation records retrieved successfully", records, page, limit, total)


@router.get("/summary")
async def get_my_donation_summary(
    current_user: dict = Depends(get_current_user),
    stats: StatsService = Depends(get_stats_service)
):
    summary = await stats.user_summary(current_user["id"])
    return ok("User donation summary retrieved successfully", summary)


@router.get("/{record_id}")
async def get_donation_record(
    record_id: str,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    return ok("Donation record retrieved successfully", await service.get_donation(record_id))


@router.put("/{record_id}")
async def update_donation_record(
    record_id: str,
    updates: DonationUpdate,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    audit: AuditService = Depends(get_audit_service)
):
    record = await service.update_donation(record_id, current_user["id"], updates)
    await audit.log(AuditAction.UPDATE, AuditModule.DONATIONS, current_user,
                    record_id=record_id, record_type="donation",
                    new_values=updates.model_dump(mode="json", exclude_unset=True),
                    request=http_request)
    return ok("Donation record updated successfully", record)


@router.patch("/{record_id}/complete")
async def complete_donation(
    record_id: str,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    audit: AuditService = Depends(get_audit_service)
):
    record = await service.complete_donation(record_id, current_user["id"])
    await audit.log_transition(AuditAction.COMPLETE, AuditModule.DONATIONS, current_user,
                               record_id, "donation", DonationStatus.PENDING.value,
                               DonationStatus.COMPLETED.value, request=http_request)
    return ok("Donation marked as completed", record)


@router.patch("/{record_id}/cancel")
async def cancel_donation(
    record_id: str,
    http_request: Request,
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service),
    audit: AuditService = Depends(get_audit_service)
):
    await service.cancel_donation(record_id, current_user["id"])
    await audit.log_transition(AuditAction.CANCEL, AuditModule.DONATIONS, current_user,
                               record_id, "donation", DonationStatus.PENDING.value,
                               DonationStatus.CANCELLED.value, request=http_request)
    return ok("Donation cancelled successfully")


@router.get("")
async def get_donation_records(
    status: Optional[DonationStatus] = None,
    blood_group: Optional[BloodGroup] = None,
    city: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: dict = Depends(get_current_user),
    service: DonationService = Depends(get_donation_service)
):
    records, total = await service.list_donations(status, blood_group, city, page, limit)
    return paginated("Donation records retrieved successfully", records, page, limit, total)
