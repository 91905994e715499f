"""
Automated Moderation Signal Repository.

One row per (content_type, content_id); writes go through upsert_for_target.
"""

from typing import Any, Iterable

from loguru import logger
from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from repositories import db_models
from repositories.base import BaseRepository
from repositories.db_models import ContentType, SignalStatus


class AutomatedSignalRepository(BaseRepository[db_models.AutomatedModerationSignal]):
    """Repository for automated moderation signal operations."""

    def __init__(self, db: Session):
        """Initialize repository."""
        super().__init__(db_models.AutomatedModerationSignal, db)

    def get_by_target(
        self, content_type: ContentType, content_id: int
    ) -> db_models.AutomatedModerationSignal | None:
        """Get the signal for a content target, if one was ever recorded."""
        return (
            self.db.query(self.model)
            .filter(
                self.model.content_type == content_type,
                self.model.content_id == content_id,
            )
            .first()
        )

    def get_active_for_targets(
        self, targets: Iterable[tuple[ContentType, int]]
    ) -> list[db_models.AutomatedModerationSignal]:
        """
        Get active signals for a batch of targets in one query.

        Args:
            targets: (content_type, content_id) pairs, assumed de-duplicated

        Returns:
            Active signals among the given targets
        """
        conditions = [
            and_(
                self.model.content_type == content_type,
                self.model.content_id == content_id,
            )
            for content_type, content_id in targets
        ]
        if not conditions:
            return []

        return (
            self.db.query(self.model)
            .filter(self.model.status == SignalStatus.ACTIVE, or_(*conditions))
            .all()
        )

    def upsert_for_target(
        self,
        content_type: ContentType,
        content_id: int,
        values: dict[str, Any],
        insert_values: dict[str, Any] | None = None,
    ) -> db_models.AutomatedModerationSignal:
        """
        Insert or update the signal for a target.

        Args:
            content_type: Target content type
            content_id: Target ID
            values: Columns written on both insert and update
            insert_values: Columns written only when the row is created

        Returns:
            The stored signal

        If a concurrent insert wins the unique constraint, the transaction is
        rolled back and the write is retried as an update (last write wins).
        """
        signal = self.get_by_target(content_type, content_id)
        if signal is None:
            signal = self.model(
                content_type=content_type,
                content_id=content_id,
                **(insert_values or {}),
            )
            self.db.add(signal)
        self._apply(signal, values)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(
                f"Concurrent signal insert for {content_type.value}:{content_id}, "
                "retrying as update"
            )
            signal = self.get_by_target(content_type, content_id)
            if signal is None:
                raise
            self._apply(signal, values)
            self.db.commit()

        self.db.refresh(signal)
        return signal

    def update_fields(
        self, signal: db_models.AutomatedModerationSignal, values: dict[str, Any]
    ) -> db_models.AutomatedModerationSignal:
        """Apply column values to an existing signal and commit."""
        self._apply(signal, values)
        return self.update(signal)

    @staticmethod
    def _apply(
        signal: db_models.AutomatedModerationSignal, values: dict[str, Any]
    ) -> None:
        for field, value in values.items():
            setattr(signal, field, value)
