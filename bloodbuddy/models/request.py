from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime, timezone
import uuid
from bloodbuddy.config import MIN_UNITS_NEEDED, MAX_UNITS_NEEDED
from .enums import BloodGroup, UrgencyLevel, RequestStatus

class BloodRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    patient_name: str
    blood_group: BloodGroup
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    hospital: str
    city: str
    pincode: str
    units_needed: int = Field(ge=MIN_UNITS_NEEDED, le=MAX_UNITS_NEEDED)
    contact_phone: str
    description: Optional[str] = None
    requester_id: str
    requester_name: str
    status: RequestStatus = RequestStatus.ACTIVE
    fulfilled_by: List[str] = []
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def can_be_fulfilled(self, now: datetime) -> bool:
        return self.status == RequestStatus.ACTIVE and not self.is_expired(now)

class BloodRequestCreate(BaseModel):
    patient_name: str = Field(min_length=1, max_length=100)
    blood_group: BloodGroup
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    hospital: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1)
    pincode: str = Field(pattern=r"^\d{6}$")
    units_needed: int = Field(ge=MIN_UNITS_NEEDED, le=MAX_UNITS_NEEDED)
    contact_phone: str = Field(pattern=r"^\+?[\d\s\-()]+$")
    description: Optional[str] = Field(default=None, max_length=500)

class BloodRequestUpdate(BaseModel):
    """Fields a requester may change while the request is still active.

    Blood group and urgency are fixed at creation because the expiry was
    derived from them.
    """
    model_config = ConfigDict(extra="forbid")
    patient_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    hospital: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1)
    pincode: Optional[str] = Field(default=None, pattern=r"^\d{6}$")
    units_needed: Optional[int] = Field(default=None, ge=MIN_UNITS_NEEDED, le=MAX_UNITS_NEEDED)
    contact_phone: Optional[str] = Field(default=None, pattern=r"^\+?[\d\s\-()]+$")
    description: Optional[str] = Field(default=None, max_length=500)
