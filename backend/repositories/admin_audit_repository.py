"""
Admin Audit Log Repository.

Append-only storage for administrative and system moderation actions.
"""

from typing import Optional

from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository


class AdminAuditRepository(BaseRepository[db_models.AdminAuditLog]):
    """Repository for admin audit log operations."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.AdminAuditLog, db)

    def get_logs(
        self,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[db_models.AdminAuditLog]:
        """
        Get audit logs with filters, newest first.

        Args:
            action: Filter by action name
            resource_type: Filter by resource type
            resource_id: Filter by resource ID
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of matching AdminAuditLog entries
        """
        query = self.db.query(self.model)

        if action:
            query = query.filter(self.model.action == action)
        if resource_type:
            query = query.filter(self.model.resource_type == resource_type)
        if resource_id:
            query = query.filter(self.model.resource_id == resource_id)

        return (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
