"""Service for audit logging of administrative and system actions."""

from typing import Any, Optional

from sqlalchemy.orm import Session

from core.correlation import get_correlation_id
from repositories import db_models
from repositories.admin_audit_repository import AdminAuditRepository
from repositories.db_models import AuditOutcome


class AuditAction:
    """Audit action types for moderation operations."""

    AUTOMATED_DETECTION_AUTO_HIDE = "admin.content.automated_detection_auto_hide"


class AuditScope:
    CONTENT_MODERATE = "admin.content.moderate"


class AuditService:
    """Service for audit logging."""

    @staticmethod
    def log(
        db: Session,
        action: str,
        resource_type: str,
        method: str,
        path: str,
        status_code: int,
        outcome: AuditOutcome,
        actor_id: Optional[int] = None,
        actor_role: str = "admin",
        scope: Optional[str] = None,
        resource_id: Optional[str] = None,
        reason: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> db_models.AdminAuditLog:
        """
        Append an entry to the admin audit log.

        Args:
            db: Database session
            action: Action performed (use AuditAction constants)
            resource_type: Type of entity acted upon
            method: HTTP method, or "SYSTEM" for automation
            path: Request path, or an automation:// URI
            status_code: Result status code
            outcome: success, denied or error
            actor_id: User performing the action
            actor_role: Role the actor acted under
            scope: Permission scope exercised
            resource_id: ID of the entity acted upon
            reason: Free-text justification
            metadata: Additional structured details

        Returns:
            The created AdminAuditLog entry
        """
        entry = db_models.AdminAuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            scope=scope,
            resource_type=resource_type,
            resource_id=resource_id,
            reason=reason,
            request_id=get_correlation_id() or None,
            method=method,
            path=path,
            status_code=status_code,
            outcome=outcome,
            audit_metadata=metadata,
        )
        return AdminAuditRepository(db).create(entry)
