from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog


class AuditAction(StrEnum):
    """Audit actions recorded for fee operations."""

    STRUCTURE_CREATE = "fee_structure.create"
    STRUCTURE_UPDATE = "fee_structure.update"
    STRUCTURE_DELETE = "fee_structure.delete"
    STRUCTURE_TOGGLE = "fee_structure.toggle"
    ASSIGN = "fee_structure.assign"
    FEE_CREATE = "fee.create"
    FEE_BULK_CREATE = "fee.bulk_create"
    FEE_UPDATE = "fee.update"
    FEE_DELETE = "fee.delete"
    PAYMENT_CREATE = "payment.create"


class AuditService:
    """Service for creating audit logs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str | AuditAction,
        entity_type: str,
        entity_id: int,
        user_id: int | None = None,
        entity_identifier: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry in the current transaction."""
        audit_log = AuditLog(
            user_id=user_id,
            action=str(action),
            entity_type=entity_type,
            entity_id=entity_id,
            entity_identifier=entity_identifier,
            old_values=old_values,
            new_values=new_values,
            comment=comment,
        )

        self.db.add(audit_log)
        await self.db.flush()

        return audit_log
