"""
Audit Logging Service
Writes the business audit trail. The routers call it after an operation
succeeds; the engine services never write audit entries themselves.
"""
from typing import Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from bloodbuddy.models import AuditLog, AuditAction, AuditModule, to_document

REDACTED = "[REDACTED]"


class AuditService:
    """Creates audit log entries in the ``audit_logs`` collection."""

    SENSITIVE_FIELDS = {"password", "token", "otp", "phone", "contact_phone"}

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        module: AuditModule,
        actor: Optional[dict] = None,
        record_id: Optional[str] = None,
        record_type: Optional[str] = None,
        description: Optional[str] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        request: Optional[Request] = None,
        metadata: Optional[dict] = None,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None
    ) -> str:
        """
        Record one audit entry.

        Args:
            action: What was done
            module: Which area of the API it was done in
            actor: Acting user document (as returned by get_current_user)
            record_id: ID of the affected user, blood request or donation
            record_type: "user", "blood_request" or "donation"
            description: Human-readable summary
            old_values: Values before an update
            new_values: Values after a create or update
            request: Incoming HTTP request, for client IP, method and path
            metadata: Anything else worth keeping
            from_status: Prior status for a state transition
            to_status: New status for a state transition

        Returns:
            ID of the audit entry
        """
        entry = AuditLog(
            action=action,
            module=module,
            record_id=record_id,
            record_type=record_type,
            description=description,
            from_status=from_status,
            to_status=to_status,
            old_values=self.redact(old_values),
            new_values=self.redact(new_values),
            metadata=metadata
        )

        if actor:
            entry.actor_id = actor.get("id")
            entry.actor_name = actor.get("name")
            entry.actor_type = actor.get("user_type")

        if request:
            entry.client_ip = request.client.host if request.client else None
            entry.method = request.method
            entry.path = request.url.path

        await self.db.audit_logs.insert_one(to_document(entry))
        return entry.id

    @classmethod
    def redact(cls, values: Optional[dict]) -> Optional[dict]:
        if not values:
            return None
        return {
            key: REDACTED if key.lower() in cls.SENSITIVE_FIELDS
            else cls.redact(value) if isinstance(value, dict)
            else value
            for key, value in values.items()
        }

    async def log_create(self, module: AuditModule, actor: dict, record_id: str, record_type: str,
                         new_values: dict, **kwargs) -> str:
        return await self.log(
            AuditAction.CREATE, module, actor,
            record_id=record_id, record_type=record_type,
            new_values=new_values,
            description=f"Created {record_type} {record_id}",
            **kwargs
        )

    async def log_transition(self, action: AuditAction, module: AuditModule, actor: dict,
                             record_id: str, record_type: str, from_status: str,
                             to_status: str, **kwargs) -> str:
        return await self.log(
            action, module, actor,
            record_id=record_id, record_type=record_type,
            from_status=from_status, to_status=to_status,
            description=f"{record_type} {record_id}: {from_status} -> {to_status}",
            **kwargs
        )
