"""
Service for content moderation status transitions.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

from models.exceptions import ModerationTargetNotFoundException
from models.schemas import FastHideResult
from repositories import db_models
from repositories.content_moderation_event_repository import (
    ContentModerationEventRepository,
)
from repositories.content_repository import ContentRepository, coerce_content_type
from repositories.db_models import ContentModerationStatus, ModerationAction


class ContentModerationService:
    """Service for hiding content and recording the transition."""

    @staticmethod
    def fast_hide_content(
        db: Session,
        actor_id: int,
        content_type: db_models.ContentType,
        content_id: int,
        reason: str,
        note: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> FastHideResult:
        """
        Hide a content item immediately.

        Args:
            db: Database session
            actor_id: User (or system account) performing the hide
            content_type: Type of content
            content_id: ID of content
            reason: Human-readable reason stored on the moderation event
            note: Optional moderator note
            metadata: Optional structured context stored on the event

        Returns:
            FastHideResult with whether the status changed

        Raises:
            ModerationTargetNotFoundException: If the content does not exist
        """
        resolved_type = coerce_content_type(content_type)
        content_repo = ContentRepository(db)
        item = content_repo.get_by_id(resolved_type, content_id)
        if item is None:
            raise ModerationTargetNotFoundException(resolved_type.value, content_id)

        from_status = ContentModerationStatus(item.moderation_status)
        if from_status == ContentModerationStatus.HIDDEN:
            return FastHideResult(
                changed=False, from_status=from_status, to_status=from_status
            )

        now = datetime.now(timezone.utc)
        content_repo.set_moderation_status(item, ContentModerationStatus.HIDDEN, now)

        event_repo = ContentModerationEventRepository(db)
        event_repo.add(
            db_models.ContentModerationEvent(
                content_type=resolved_type,
                content_id=content_id,
                actor_id=actor_id,
                action=ModerationAction.HIDE,
                from_status=from_status,
                to_status=ContentModerationStatus.HIDDEN,
                reason=reason[:500],
                note=note,
                event_metadata=metadata,
                created_at=now,
            )
        )
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Content {resolved_type.value}:{content_id} hidden by user {actor_id} "
            f"(was {from_status.value})"
        )
        return FastHideResult(
            changed=True,
            from_status=from_status,
            to_status=ContentModerationStatus.HIDDEN,
        )
