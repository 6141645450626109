from .enums import (
    UserType, BloodGroup, UrgencyLevel, RequestStatus, DonationStatus
)
from .base import to_document, to_storage
from .user import User, UserCreate, UserResponse, AvailabilityUpdate
from .request import BloodRequest, BloodRequestCreate, BloodRequestUpdate
from .donation import DonationRecord, DonationCreate, DonationUpdate
from .stats import (
    DonationStats, RequestStats, LeaderboardEntry, DonorSummary,
    BloodGroupCount, UserStats, Pagination
)
from .audit import AuditLog, AuditAction, AuditModule
