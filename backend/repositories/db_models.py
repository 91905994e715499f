"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

This module defines the automated moderation signal store, the moderation
audit trail and the content tables the detection engine reads from.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from repositories.database import Base


class ContentType(str, enum.Enum):
    """Moderatable content surfaces."""

    ARTICLE = "article"
    VIDEO = "video"
    COURSE = "course"
    LIVE = "live"
    PODCAST = "podcast"
    BOOK = "book"
    COMMENT = "comment"
    REVIEW = "review"


# Creator-owned content with a draft/publish lifecycle
BASE_CONTENT_TYPES: tuple[ContentType, ...] = (
    ContentType.ARTICLE,
    ContentType.VIDEO,
    ContentType.COURSE,
    ContentType.LIVE,
    ContentType.PODCAST,
    ContentType.BOOK,
)


class ContentModerationStatus(str, enum.Enum):
    VISIBLE = "visible"
    HIDDEN = "hidden"
    RESTRICTED = "restricted"


class ContentPublishStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SignalStatus(str, enum.Enum):
    """Lifecycle of an automated moderation signal."""

    ACTIVE = "active"
    REVIEWED = "reviewed"
    CLEARED = "cleared"


class TriggerSource(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    PUBLISH = "publish"


class Severity(str, enum.Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecommendedAction(str, enum.Enum):
    NONE = "none"
    REVIEW = "review"
    RESTRICT = "restrict"
    HIDE = "hide"


class AutomatedRule(str, enum.Enum):
    """Detection rules evaluated by the automated moderation engine."""

    SPAM = "spam"
    SUSPICIOUS_LINK = "suspicious_link"
    FLOOD = "flood"
    MASS_CREATION = "mass_creation"


class ModerationAction(str, enum.Enum):
    HIDE = "hide"
    UNHIDE = "unhide"
    RESTRICT = "restrict"


class AutomationOutcome(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


class AuditOutcome(str, enum.Enum):
    SUCCESS = "success"
    DENIED = "denied"
    ERROR = "error"


# Stored in resolution_action alongside ModerationAction values
RESOLUTION_CLEARED = "cleared"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


# ============================================================================
# Content Models
# ============================================================================


class BaseContentMixin:
    """
    Columns shared by creator-owned content (articles, videos, courses, ...).

    Each surface lives in its own table; the automated moderation engine
    reaches them through ContentRepository's type-to-model mapping.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ContentPublishStatus] = mapped_column(
        Enum(ContentPublishStatus),
        default=ContentPublishStatus.DRAFT,
        nullable=False,
    )
    moderation_status: Mapped[ContentModerationStatus] = mapped_column(
        Enum(ContentModerationStatus),
        default=ContentModerationStatus.VISIBLE,
        nullable=False,
    )
    hidden_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            Index(
                f"ix_{cls.__tablename__}_creator_created",  # type: ignore[attr-defined]
                "creator_id",
                "created_at",
            ),
        )


class Article(BaseContentMixin, Base):
    __tablename__ = "articles"


class Video(BaseContentMixin, Base):
    __tablename__ = "videos"


class Course(BaseContentMixin, Base):
    __tablename__ = "courses"


class LiveEvent(BaseContentMixin, Base):
    __tablename__ = "live_events"


class Podcast(BaseContentMixin, Base):
    __tablename__ = "podcasts"


class Book(BaseContentMixin, Base):
    __tablename__ = "books"


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_user_created", "user_id", "created_at"),
        Index("ix_comments_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    moderation_status: Mapped[ContentModerationStatus] = mapped_column(
        Enum(ContentModerationStatus),
        default=ContentModerationStatus.VISIBLE,
        nullable=False,
    )
    hidden_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Rating(Base):
    """A star rating with an optional written review (the "review" surface)."""

    __tablename__ = "ratings"
    __table_args__ = (
        Index("ix_ratings_user_created", "user_id", "created_at"),
        Index("ix_ratings_target", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    moderation_status: Mapped[ContentModerationStatus] = mapped_column(
        Enum(ContentModerationStatus),
        default=ContentModerationStatus.VISIBLE,
        nullable=False,
    )
    hidden_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


# ============================================================================
# Automated Moderation Models
# ============================================================================


class AutomatedModerationSignal(Base):
    """
    Outcome of the latest automated detection run for one content target.

    One row per (content_type, content_id). The row is created the first time
    a rule fires, re-scored on every later evaluation and moved to "cleared"
    (never deleted) when an evaluation no longer triggers any rule.
    """

    __tablename__ = "automated_moderation_signals"
    __table_args__ = (
        UniqueConstraint(
            "content_type", "content_id", name="uq_automated_signal_target"
        ),
        Index(
            "ix_automated_signals_status_severity",
            "status",
            "severity",
            "last_detected_at",
        ),
        Index("ix_automated_signals_actor_status", "actor_user_id", "status"),
        Index("ix_automated_signals_owner_status", "owner_user_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    content_type: Mapped[ContentType] = mapped_column(Enum(ContentType), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    owner_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[SignalStatus] = mapped_column(
        Enum(SignalStatus), default=SignalStatus.ACTIVE, nullable=False
    )
    trigger_source: Mapped[TriggerSource] = mapped_column(
        Enum(TriggerSource), nullable=False
    )
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    severity: Mapped[Severity] = mapped_column(
        Enum(Severity), default=Severity.NONE, nullable=False
    )
    recommended_action: Mapped[RecommendedAction] = mapped_column(
        Enum(RecommendedAction), default=RecommendedAction.NONE, nullable=False
    )
    triggered_rules: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    text_signals: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )
    activity_signals: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )

    # Automation state (flattened so it can be filtered on)
    automation_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    automation_eligible: Mapped[bool] = mapped_column(Boolean, default=False)
    automation_blocked_reason: Mapped[Optional[str]] = mapped_column(
        String(120), nullable=True
    )
    automation_attempted: Mapped[bool] = mapped_column(Boolean, default=False)
    automation_executed: Mapped[bool] = mapped_column(Boolean, default=False)
    automation_action: Mapped[Optional[ModerationAction]] = mapped_column(
        Enum(ModerationAction), nullable=True
    )
    automation_last_outcome: Mapped[Optional[AutomationOutcome]] = mapped_column(
        Enum(AutomationOutcome), nullable=True
    )
    automation_last_error: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True
    )
    automation_last_attempt_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    first_detected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    last_detected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    last_evaluated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False
    )
    resolved_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    resolution_action: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True, comment="hide, unhide, restrict or cleared"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )


class ContentModerationEvent(Base):
    """Append-only history of moderation status transitions on content."""

    __tablename__ = "content_moderation_events"
    __table_args__ = (
        Index(
            "ix_content_moderation_events_target",
            "content_type",
            "content_id",
            "created_at",
        ),
        Index("ix_content_moderation_events_actor", "actor_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    content_type: Mapped[ContentType] = mapped_column(Enum(ContentType), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    action: Mapped[ModerationAction] = mapped_column(
        Enum(ModerationAction), nullable=False
    )
    from_status: Mapped[ContentModerationStatus] = mapped_column(
        Enum(ContentModerationStatus), nullable=False
    )
    to_status: Mapped[ContentModerationStatus] = mapped_column(
        Enum(ContentModerationStatus), nullable=False
    )
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False
    )


class AdminAuditLog(Base):
    """Audit trail of administrative and system moderation actions."""

    __tablename__ = "admin_audit_logs"
    __table_args__ = (
        Index("ix_admin_audit_actor_created", "actor_id", "created_at"),
        Index("ix_admin_audit_action_created", "action", "created_at"),
        Index("ix_admin_audit_resource", "resource_type", "resource_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    actor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    actor_role: Mapped[str] = mapped_column(String(30), nullable=False)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    scope: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    path: Mapped[str] = mapped_column(String(255), nullable=False)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    outcome: Mapped[AuditOutcome] = mapped_column(Enum(AuditOutcome), nullable=False)
    audit_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, nullable=False, index=True
    )
