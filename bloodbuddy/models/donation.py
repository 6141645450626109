from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime, timezone
import uuid
from bloodbuddy.config import MIN_UNITS_CONTRIBUTED, MAX_UNITS_CONTRIBUTED
from .enums import BloodGroup, DonationStatus

class DonationRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    donor_id: str
    donor_name: str
    blood_group: BloodGroup
    request_id: Optional[str] = None
    date: datetime
    hospital: str
    city: str
    units_contributed: int = Field(ge=MIN_UNITS_CONTRIBUTED, le=MAX_UNITS_CONTRIBUTED)
    points: int = Field(default=0, ge=0)
    status: DonationStatus = DonationStatus.PENDING
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DonationCreate(BaseModel):
    hospital: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1)
    units_contributed: int = Field(default=MIN_UNITS_CONTRIBUTED, ge=MIN_UNITS_CONTRIBUTED, le=MAX_UNITS_CONTRIBUTED)
    request_id: Optional[str] = None
    blood_group: Optional[BloodGroup] = None
    date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("date")
    @classmethod
    def as_utc(cls, value):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

class DonationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")
    hospital: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1)
    units_contributed: Optional[int] = Field(default=None, ge=MIN_UNITS_CONTRIBUTED, le=MAX_UNITS_CONTRIBUTED)
    date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("date")
    @classmethod
    def as_utc(cls, value):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
