from enum import Enum

class UserType(str, Enum):
    DONOR = "donor"
    PATIENT = "patient"
    HOSPITAL = "hospital"

class BloodGroup(str, Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"

    @property
    def is_rh_positive(self) -> bool:
        return self.value.endswith("+")

class UrgencyLevel(str, Enum):
    CRITICAL = "critical"
    URGENT = "urgent"
    NORMAL = "normal"

class RequestStatus(str, Enum):
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

class DonationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
