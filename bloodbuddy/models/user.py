from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional
from datetime import datetime, timezone
import uuid
from bloodbuddy.config import MIN_DONOR_AGE, MAX_DONOR_AGE, MIN_DONOR_WEIGHT, MAX_DONOR_WEIGHT
from .enums import UserType, BloodGroup

class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    email: str
    user_type: UserType
    blood_group: Optional[BloodGroup] = None
    phone: str
    city: str
    pincode: str
    age: Optional[int] = None
    weight: Optional[float] = None
    donation_count: int = Field(default=0, ge=0)
    is_available: bool = True
    last_donation: Optional[datetime] = None
    profile_picture: Optional[str] = None
    is_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_donor(self) -> bool:
        return self.user_type == UserType.DONOR

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    email: str = Field(pattern=r"^[\w.+-]+@[\w-]+(\.[\w-]+)+$")
    user_type: UserType
    blood_group: Optional[BloodGroup] = None
    phone: str = Field(pattern=r"^\+?[\d\s\-()]+$")
    city: str = Field(min_length=1)
    pincode: str = Field(pattern=r"^\d{6}$")
    age: Optional[int] = Field(default=None, ge=MIN_DONOR_AGE, le=MAX_DONOR_AGE)
    weight: Optional[float] = Field(default=None, ge=MIN_DONOR_WEIGHT, le=MAX_DONOR_WEIGHT)
    profile_picture: Optional[str] = None

    @model_validator(mode="after")
    def check_donor_fields(self):
        if self.user_type == UserType.DONOR:
            missing = [f for f in ("blood_group", "age", "weight") if getattr(self, f) is None]
            if missing:
                raise ValueError(f"Donors must provide: {', '.join(missing)}")
        elif self.blood_group is not None:
            raise ValueError("Blood group is only recorded for donors")
        return self

class AvailabilityUpdate(BaseModel):
    is_available: bool

class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    user_type: UserType
    blood_group: Optional[BloodGroup] = None
    phone: str
    city: str
    pincode: str
    donation_count: int
    is_available: bool
    last_donation: Optional[datetime] = None
    is_verified: bool
    created_at: datetime
