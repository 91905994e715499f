import re
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from repositories.db_models import (
    AutomatedRule,
    AutomationOutcome,
    ContentModerationStatus,
    ContentType,
    ModerationAction,
    RecommendedAction,
    Severity,
    SignalStatus,
    TriggerSource,
)

DEFAULT_AUTO_HIDE_ALLOWED_RULES: tuple[AutomatedRule, ...] = (
    AutomatedRule.SPAM,
    AutomatedRule.SUSPICIOUS_LINK,
    AutomatedRule.MASS_CREATION,
)
DEFAULT_AUTO_HIDE_MIN_SEVERITY = Severity.CRITICAL
_ACTOR_ID_PATTERN = re.compile(r"[1-9][0-9]*")


class SnapshotPublishStatus(str, Enum):
    """Publish state as seen by the detection engine."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    # Comments and reviews are public as soon as they exist
    PUBLISHED_IMPLICIT = "published_implicit"


# Automated Moderation Configuration
class AutomatedModerationConfig(BaseModel):
    """
    Auto-hide policy knobs, resolved once from Settings.

    The engine receives this object at construction time and never reads the
    environment mid-evaluation.
    """

    model_config = ConfigDict(frozen=True)

    auto_hide_enabled: bool = False
    auto_hide_actor_id: Optional[int] = None
    auto_hide_min_severity: Severity = DEFAULT_AUTO_HIDE_MIN_SEVERITY
    auto_hide_allowed_rules: tuple[AutomatedRule, ...] = DEFAULT_AUTO_HIDE_ALLOWED_RULES

    @classmethod
    def from_settings(cls, settings: Any) -> "AutomatedModerationConfig":
        """
        Build the config from application settings.

        - The actor ID must be a positive integer, otherwise it is treated as absent.
        - An unknown minimum severity falls back to critical.
        - Unknown rule names are dropped; an empty list falls back to the defaults.
        """
        raw_actor = (settings.AUTOMATED_MODERATION_AUTO_HIDE_ACTOR_ID or "").strip()
        actor_id = int(raw_actor) if _ACTOR_ID_PATTERN.fullmatch(raw_actor) else None

        raw_severity = (settings.AUTOMATED_MODERATION_AUTO_HIDE_MIN_SEVERITY or "").strip()
        try:
            min_severity = Severity(raw_severity)
        except ValueError:
            min_severity = DEFAULT_AUTO_HIDE_MIN_SEVERITY

        allowed: list[AutomatedRule] = []
        for item in (settings.AUTOMATED_MODERATION_AUTO_HIDE_ALLOWED_RULES or "").split(","):
            try:
                rule = AutomatedRule(item.strip())
            except ValueError:
                continue
            if rule not in allowed:
                allowed.append(rule)

        return cls(
            auto_hide_enabled=bool(settings.AUTOMATED_MODERATION_AUTO_HIDE_ENABLED),
            auto_hide_actor_id=actor_id,
            auto_hide_min_severity=min_severity,
            auto_hide_allowed_rules=tuple(allowed) or DEFAULT_AUTO_HIDE_ALLOWED_RULES,
        )


# Detection Signal Schemas
class TextSignals(BaseModel):
    text_length: int = Field(default=0, ge=0)
    token_count: int = Field(default=0, ge=0)
    unique_token_ratio: float = Field(default=0, ge=0, le=1)
    url_count: int = Field(default=0, ge=0)
    suspicious_url_count: int = Field(default=0, ge=0)
    duplicate_url_count: int = Field(default=0, ge=0)
    repeated_token_count: int = Field(default=0, ge=0)
    duplicate_line_count: int = Field(default=0, ge=0)


class ActivitySignals(BaseModel):
    same_surface_last_10m: int = Field(default=0, ge=0)
    same_surface_last_60m: int = Field(default=0, ge=0)
    portfolio_last_10m: int = Field(default=0, ge=0)
    portfolio_last_60m: int = Field(default=0, ge=0)


class TriggeredRule(BaseModel):
    rule: AutomatedRule
    score: int = Field(..., ge=1)
    severity: Severity
    description: str = Field(..., max_length=500)
    metadata: Optional[dict[str, Any]] = None


class TargetSnapshot(BaseModel):
    """Normalized view of one moderation target, whatever its surface."""

    content_type: ContentType
    content_id: int
    actor_user_id: Optional[int] = None
    owner_user_id: Optional[int] = None
    moderation_status: ContentModerationStatus = ContentModerationStatus.VISIBLE
    publish_status: SnapshotPublishStatus = SnapshotPublishStatus.PUBLISHED_IMPLICIT
    text: str = ""


class AutomationDecision(BaseModel):
    enabled: bool = False
    eligible: bool = False
    blocked_reason: Optional[str] = None


class AutomatedModerationEvaluation(BaseModel):
    content_type: ContentType
    content_id: int
    actor_user_id: Optional[int] = None
    owner_user_id: Optional[int] = None
    moderation_status: ContentModerationStatus
    publish_status: SnapshotPublishStatus
    trigger_source: TriggerSource
    score: int = 0
    severity: Severity = Severity.NONE
    recommended_action: RecommendedAction = RecommendedAction.NONE
    triggered_rules: list[TriggeredRule] = Field(default_factory=list)
    text_signals: TextSignals = Field(default_factory=TextSignals)
    activity_signals: ActivitySignals = Field(default_factory=ActivitySignals)
    automation: AutomationDecision = Field(default_factory=AutomationDecision)
    evaluated_at: datetime


class AutomationResult(BaseModel):
    """What the auto-hide executor did for one evaluation."""

    attempted: bool = False
    executed: bool = False
    blocked_reason: Optional[str] = None
    action: Optional[ModerationAction] = None
    error: Optional[str] = None


class AutomationStateSummary(BaseModel):
    enabled: bool = False
    eligible: bool = False
    blocked_reason: Optional[str] = None
    attempted: bool = False
    executed: bool = False
    action: Optional[ModerationAction] = None
    last_outcome: Optional[AutomationOutcome] = None
    last_error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None


class AutomatedModerationSummary(BaseModel):
    """Read model of a stored signal (or an empty one when none exists)."""

    active: bool = False
    status: Union[SignalStatus, Literal["none"]] = "none"
    score: int = 0
    severity: Severity = Severity.NONE
    recommended_action: RecommendedAction = RecommendedAction.NONE
    trigger_source: Optional[TriggerSource] = None
    triggered_rules: list[TriggeredRule] = Field(default_factory=list)
    last_detected_at: Optional[datetime] = None
    last_evaluated_at: Optional[datetime] = None
    text_signals: TextSignals = Field(default_factory=TextSignals)
    activity_signals: ActivitySignals = Field(default_factory=ActivitySignals)
    automation: AutomationStateSummary = Field(default_factory=AutomationStateSummary)


class AutomatedModerationResult(BaseModel):
    evaluation: AutomatedModerationEvaluation
    signal: AutomatedModerationSummary
    automation: AutomationResult


class FastHideResult(BaseModel):
    changed: bool
    from_status: ContentModerationStatus
    to_status: ContentModerationStatus
