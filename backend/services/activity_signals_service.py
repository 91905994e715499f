"""
Behavioural activity signals for automated moderation.

Counts how many items an actor created recently, on the target's own surface
and across all base content surfaces.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from models.schemas import ActivitySignals
from repositories.content_repository import ContentRepository, coerce_content_type
from repositories.db_models import BASE_CONTENT_TYPES, ContentType

SHORT_WINDOW = timedelta(minutes=10)
LONG_WINDOW = timedelta(minutes=60)


def _is_valid_actor_id(actor_user_id: object) -> bool:
    return (
        isinstance(actor_user_id, int)
        and not isinstance(actor_user_id, bool)
        and actor_user_id > 0
    )


class ActivitySignalsService:
    """Service for time-windowed creation counts."""

    @staticmethod
    def collect_activity_signals(
        db: Session,
        content_type: ContentType,
        actor_user_id: object,
        now: Optional[datetime] = None,
    ) -> ActivitySignals:
        """
        Count an actor's recent creations in the 10m and 60m windows.

        Args:
            db: Database session
            content_type: Surface of the target being evaluated
            actor_user_id: Author of the target; anything other than a
                positive integer yields all-zero signals
            now: Reference time (defaults to current UTC time)

        Returns:
            ActivitySignals. For comments and reviews the portfolio counts
            mirror the same-surface counts.
        """
        if not _is_valid_actor_id(actor_user_id):
            return ActivitySignals()

        resolved_type = coerce_content_type(content_type)
        now = now or datetime.now(timezone.utc)
        short_since = now - SHORT_WINDOW
        long_since = now - LONG_WINDOW

        content_repo = ContentRepository(db)
        same_10m, same_60m = content_repo.count_created_since(
            resolved_type, actor_user_id, short_since, long_since  # type: ignore[arg-type]
        )

        if resolved_type not in BASE_CONTENT_TYPES:
            return ActivitySignals(
                same_surface_last_10m=same_10m,
                same_surface_last_60m=same_60m,
                portfolio_last_10m=same_10m,
                portfolio_last_60m=same_60m,
            )

        portfolio_10m, portfolio_60m = content_repo.count_portfolio_since(
            actor_user_id, short_since, long_since  # type: ignore[arg-type]
        )
        return ActivitySignals(
            same_surface_last_10m=same_10m,
            same_surface_last_60m=same_60m,
            portfolio_last_10m=portfolio_10m,
            portfolio_last_60m=portfolio_60m,
        )
