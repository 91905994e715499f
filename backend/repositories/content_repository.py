"""
Content data access for the automated moderation engine.

Every moderatable surface lives in its own table. This repository hides that
behind a closed ContentType -> model mapping, and exposes the three things the
engine needs: a normalized snapshot of one target, creation counts within
time windows, and moderation status updates.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import case, func, select, union_all
from sqlalchemy.orm import Session

from models.exceptions import InvalidContentTypeException
from models.schemas import SnapshotPublishStatus, TargetSnapshot
from repositories import db_models
from repositories.db_models import (
    BASE_CONTENT_TYPES,
    ContentModerationStatus,
    ContentPublishStatus,
    ContentType,
)

CONTENT_MODELS: dict[ContentType, Any] = {
    ContentType.ARTICLE: db_models.Article,
    ContentType.VIDEO: db_models.Video,
    ContentType.COURSE: db_models.Course,
    ContentType.LIVE: db_models.LiveEvent,
    ContentType.PODCAST: db_models.Podcast,
    ContentType.BOOK: db_models.Book,
    ContentType.COMMENT: db_models.Comment,
    ContentType.REVIEW: db_models.Rating,
}


def coerce_content_type(value: object) -> ContentType:
    """
    Validate a content type.

    Raises:
        InvalidContentTypeException: If value is not one of the eight surfaces.
    """
    if isinstance(value, ContentType):
        return value
    try:
        return ContentType(value)
    except ValueError:
        raise InvalidContentTypeException(value) from None


def _to_publish_status(value: object) -> SnapshotPublishStatus:
    if value == ContentPublishStatus.DRAFT:
        return SnapshotPublishStatus.DRAFT
    if value == ContentPublishStatus.ARCHIVED:
        return SnapshotPublishStatus.ARCHIVED
    if value == ContentPublishStatus.PUBLISHED:
        return SnapshotPublishStatus.PUBLISHED
    return SnapshotPublishStatus.PUBLISHED_IMPLICIT


def _to_moderation_status(value: object) -> ContentModerationStatus:
    if value == ContentModerationStatus.HIDDEN:
        return ContentModerationStatus.HIDDEN
    if value == ContentModerationStatus.RESTRICTED:
        return ContentModerationStatus.RESTRICTED
    return ContentModerationStatus.VISIBLE


class ContentRepository:
    """Repository spanning all moderatable content tables."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def get_model(content_type: object) -> Any:
        return CONTENT_MODELS[coerce_content_type(content_type)]

    @staticmethod
    def _actor_column(content_type: ContentType, model: Any) -> Any:
        if content_type in BASE_CONTENT_TYPES:
            return model.creator_id
        return model.user_id

    def get_by_id(self, content_type: object, content_id: int) -> Optional[Any]:
        model = self.get_model(content_type)
        return self.db.query(model).filter(model.id == content_id).first()

    def get_snapshot(
        self, content_type: object, content_id: int
    ) -> Optional[TargetSnapshot]:
        """
        Load a normalized snapshot of one target.

        Args:
            content_type: One of the eight moderatable surfaces
            content_id: Target ID

        Returns:
            TargetSnapshot, or None if the target does not exist

        Raises:
            InvalidContentTypeException: If content_type is unsupported
        """
        resolved_type = coerce_content_type(content_type)
        item = self.get_by_id(resolved_type, content_id)
        if item is None:
            return None

        if resolved_type == ContentType.COMMENT:
            actor_id = item.user_id
            text = item.content or ""
            publish_status = SnapshotPublishStatus.PUBLISHED_IMPLICIT
        elif resolved_type == ContentType.REVIEW:
            actor_id = item.user_id
            text = item.review or ""
            publish_status = SnapshotPublishStatus.PUBLISHED_IMPLICIT
        else:
            actor_id = item.creator_id
            text = "\n".join(
                part for part in (item.title, item.description, item.content) if part
            )
            publish_status = _to_publish_status(item.status)

        return TargetSnapshot(
            content_type=resolved_type,
            content_id=content_id,
            actor_user_id=actor_id,
            owner_user_id=actor_id,
            moderation_status=_to_moderation_status(item.moderation_status),
            publish_status=publish_status,
            text=text,
        )

    def count_created_since(
        self,
        content_type: ContentType,
        actor_id: int,
        short_since: datetime,
        long_since: datetime,
    ) -> tuple[int, int]:
        """
        Count an actor's items on one surface within two windows.

        Both windows are answered by a single statement; short_since must be
        later than long_since.

        Returns:
            Tuple of (count since short_since, count since long_since)
        """
        model = self.get_model(content_type)
        actor_column = self._actor_column(content_type, model)

        row = self.db.execute(
            select(
                func.coalesce(
                    func.sum(case((model.created_at >= short_since, 1), else_=0)), 0
                ),
                func.count(),
            )
            .select_from(model)
            .where(actor_column == actor_id, model.created_at >= long_since)
        ).one()
        return int(row[0]), int(row[1])

    def count_portfolio_since(
        self,
        actor_id: int,
        short_since: datetime,
        long_since: datetime,
    ) -> tuple[int, int]:
        """
        Count an actor's creations across all base content tables.

        The six per-table reads are combined with UNION ALL and aggregated in
        one round trip.

        Returns:
            Tuple of (count since short_since, count since long_since)
        """
        per_table = [
            select(model.created_at.label("created_at")).where(
                model.creator_id == actor_id, model.created_at >= long_since
            )
            for model in (CONTENT_MODELS[ct] for ct in BASE_CONTENT_TYPES)
        ]
        creations = union_all(*per_table).subquery()

        row = self.db.execute(
            select(
                func.coalesce(
                    func.sum(
                        case((creations.c.created_at >= short_since, 1), else_=0)
                    ),
                    0,
                ),
                func.count(),
            ).select_from(creations)
        ).one()
        return int(row[0]), int(row[1])

    def set_moderation_status(
        self,
        item: Any,
        status: ContentModerationStatus,
        changed_at: datetime,
    ) -> None:
        """Change moderation status on a content row without committing."""
        item.moderation_status = status
        item.hidden_at = changed_at if status == ContentModerationStatus.HIDDEN else None
        self.db.add(item)
