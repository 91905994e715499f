"""Repository for content moderation status transitions."""

from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository
from repositories.db_models import ContentType


class ContentModerationEventRepository(
    BaseRepository[db_models.ContentModerationEvent]
):
    """Repository for content moderation event operations."""

    def __init__(self, db: Session):
        super().__init__(db_models.ContentModerationEvent, db)

    def list_for_content(
        self, content_type: ContentType, content_id: int
    ) -> list[db_models.ContentModerationEvent]:
        """Get the moderation history of one content item, oldest first."""
        return (
            self.db.query(self.model)
            .filter(
                self.model.content_type == content_type,
                self.model.content_id == content_id,
            )
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .all()
        )
