"""
Audit Log Models
Who moved which record, from what state to what state.
"""
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    FULFILL = "fulfill"
    COMPLETE = "complete"
    CANCEL = "cancel"


class AuditModule(str, Enum):
    USERS = "users"
    REQUESTS = "requests"
    DONATIONS = "donations"


class AuditLog(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: AuditAction
    module: AuditModule
    record_id: Optional[str] = None
    record_type: Optional[str] = None  # "user", "blood_request" or "donation"
    description: Optional[str] = None

    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_type: Optional[str] = None

    # Only set for status transitions
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None

    client_ip: Optional[str] = None
    method: Optional[str] = None
    path: Optional[str] = None

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[dict] = None
