"""
Detection rules and decision policy for automated moderation.

Rules are pure functions over TextSignals/ActivitySignals. Each returns a
TriggeredRule when its own score reaches its trigger threshold, or None.
The policy functions turn the summed score into a severity tier, a
recommended action and an auto-hide eligibility decision.
"""

from typing import Optional

from models.schemas import (
    ActivitySignals,
    AutomatedModerationConfig,
    AutomationDecision,
    SnapshotPublishStatus,
    TextSignals,
    TriggeredRule,
)
from repositories.db_models import (
    BASE_CONTENT_TYPES,
    AutomatedRule,
    ContentModerationStatus,
    ContentType,
    RecommendedAction,
    Severity,
)

_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

# Rules strong enough to justify hiding at "high" severity
HIDE_AT_HIGH_RULES = frozenset(
    {AutomatedRule.SPAM, AutomatedRule.SUSPICIOUS_LINK, AutomatedRule.MASS_CREATION}
)


class BlockedReason:
    """Codes explaining why auto-hide was not (or could not be) executed."""

    NO_TRIGGERED_RULES = "no_triggered_rules"
    RECOMMENDED_ACTION_NOT_HIDE = "recommended_action_not_hide"
    ALREADY_MODERATED = "already_moderated"
    CONTENT_NOT_PUBLIC = "content_not_public"
    SEVERITY_BELOW_THRESHOLD = "severity_below_threshold"
    RULE_NOT_ALLOWED = "rule_not_allowed"
    AUTO_HIDE_ACTOR_MISSING = "auto_hide_actor_missing"
    AUTO_HIDE_DISABLED = "auto_hide_disabled"
    AUTOMATION_ERROR = "automation_error"


def is_base_content_type(content_type: ContentType) -> bool:
    return content_type in BASE_CONTENT_TYPES


# ============================================================================
# Severity
# ============================================================================


def to_severity(score: int) -> Severity:
    """Map a score onto the severity tiers (>=12, >=8, >=4, >=1)."""
    if score >= 12:
        return Severity.CRITICAL
    if score >= 8:
        return Severity.HIGH
    if score >= 4:
        return Severity.MEDIUM
    if score >= 1:
        return Severity.LOW
    return Severity.NONE


def severity_rank(severity: Severity) -> int:
    return _SEVERITY_RANK[Severity(severity)]


def is_severity_at_least(current: Severity, minimum: Severity) -> bool:
    return severity_rank(current) >= severity_rank(minimum)


def is_valid_severity(value: object) -> bool:
    return isinstance(value, str) and value in {s.value for s in Severity}


def build_rule(
    rule: AutomatedRule,
    score: int,
    description: str,
    metadata: Optional[dict] = None,
) -> TriggeredRule:
    return TriggeredRule(
        rule=rule,
        score=score,
        severity=to_severity(score),
        description=description,
        metadata=metadata,
    )


# ============================================================================
# Rules
# ============================================================================


def build_spam_rule(text_signals: TextSignals) -> Optional[TriggeredRule]:
    """Repetition, duplicated lines/links and low lexical diversity."""
    score = 0
    signals: list[str] = []

    if text_signals.repeated_token_count >= 4:
        score += min(text_signals.repeated_token_count - 2, 4)
        signals.append(f"token repeated {text_signals.repeated_token_count}x")

    if text_signals.duplicate_line_count >= 2:
        score += min(text_signals.duplicate_line_count + 1, 4)
        signals.append(f"{text_signals.duplicate_line_count} duplicate lines")

    if text_signals.token_count >= 20 and text_signals.unique_token_ratio <= 0.35:
        score += 3
        signals.append(f"low lexical diversity ({text_signals.unique_token_ratio})")

    if text_signals.duplicate_url_count >= 1:
        score += min(text_signals.duplicate_url_count + 1, 3)
        signals.append(f"{text_signals.duplicate_url_count} repeated URL(s)")

    if text_signals.url_count >= 3 and text_signals.unique_token_ratio <= 0.45:
        score += 2
        signals.append("many external links with low text diversity")

    if score < 3:
        return None

    return build_rule(
        AutomatedRule.SPAM,
        score,
        f"Spam pattern detected ({'; '.join(signals)}).",
        {
            "repeated_token_count": text_signals.repeated_token_count,
            "duplicate_line_count": text_signals.duplicate_line_count,
            "duplicate_url_count": text_signals.duplicate_url_count,
            "unique_token_ratio": text_signals.unique_token_ratio,
            "url_count": text_signals.url_count,
        },
    )


def build_suspicious_link_rule(text_signals: TextSignals) -> Optional[TriggeredRule]:
    """Shortener/redirect hosts and raw link volume."""
    score = 0
    signals: list[str] = []

    if text_signals.suspicious_url_count > 0:
        score += 6 + min(text_signals.suspicious_url_count - 1, 3)
        signals.append(f"{text_signals.suspicious_url_count} suspicious link(s)")

    if text_signals.url_count >= 4:
        score += 4 if text_signals.url_count >= 6 else 3
        signals.append(f"{text_signals.url_count} external links")

    if score < 4:
        return None

    return build_rule(
        AutomatedRule.SUSPICIOUS_LINK,
        score,
        f"Suspicious link pattern detected ({'; '.join(signals)}).",
        {
            "url_count": text_signals.url_count,
            "suspicious_url_count": text_signals.suspicious_url_count,
            "duplicate_url_count": text_signals.duplicate_url_count,
        },
    )


def build_flood_rule(
    content_type: ContentType, activity_signals: ActivitySignals
) -> Optional[TriggeredRule]:
    """Same-surface creation velocity; interaction surfaces tolerate more."""
    score = 0
    signals: list[str] = []
    base_content = is_base_content_type(content_type)
    short_window_threshold = 4 if base_content else 8
    long_window_threshold = 8 if base_content else 20

    last_10m = activity_signals.same_surface_last_10m
    last_60m = activity_signals.same_surface_last_60m

    if last_10m >= short_window_threshold:
        score += 6 if last_10m >= short_window_threshold * 2 else 4
        signals.append(f"{last_10m} items in 10m")

    if last_60m >= long_window_threshold:
        score += 5 if last_60m >= long_window_threshold * 2 else 3
        signals.append(f"{last_60m} items in 60m")

    if score < 4:
        return None

    return build_rule(
        AutomatedRule.FLOOD,
        score,
        f"Publishing cadence above normal ({'; '.join(signals)}).",
        {
            "same_surface_last_10m": last_10m,
            "same_surface_last_60m": last_60m,
        },
    )


def build_mass_creation_rule(
    content_type: ContentType, activity_signals: ActivitySignals
) -> Optional[TriggeredRule]:
    """Cross-surface creation velocity, base content only."""
    if not is_base_content_type(content_type):
        return None

    score = 0
    signals: list[str] = []
    last_10m = activity_signals.portfolio_last_10m
    last_60m = activity_signals.portfolio_last_60m

    if last_10m >= 3:
        score += 6 if last_10m >= 6 else 4
        signals.append(f"{last_10m} creations in 10m")

    if last_60m >= 6:
        score += 5 if last_60m >= 10 else 3
        signals.append(f"{last_60m} creations in 60m")

    if score < 4:
        return None

    return build_rule(
        AutomatedRule.MASS_CREATION,
        score,
        f"Cross-surface creation volume above expected ({'; '.join(signals)}).",
        {
            "portfolio_last_10m": last_10m,
            "portfolio_last_60m": last_60m,
        },
    )


def evaluate_rules(
    content_type: ContentType,
    text_signals: TextSignals,
    activity_signals: ActivitySignals,
) -> list[TriggeredRule]:
    """Run all four rules and keep the ones that triggered."""
    candidates = [
        build_spam_rule(text_signals),
        build_suspicious_link_rule(text_signals),
        build_flood_rule(content_type, activity_signals),
        build_mass_creation_rule(content_type, activity_signals),
    ]
    return [rule for rule in candidates if rule is not None]


# ============================================================================
# Policy
# ============================================================================


def map_recommended_action(
    severity: Severity, triggered_rules: list[TriggeredRule]
) -> RecommendedAction:
    if severity == Severity.CRITICAL:
        return RecommendedAction.HIDE

    if severity == Severity.HIGH:
        if any(rule.rule in HIDE_AT_HIGH_RULES for rule in triggered_rules):
            return RecommendedAction.HIDE
        return RecommendedAction.RESTRICT

    if severity in (Severity.MEDIUM, Severity.LOW):
        return RecommendedAction.REVIEW

    return RecommendedAction.NONE


def decide_automation(
    *,
    recommended_action: RecommendedAction,
    severity: Severity,
    triggered_rules: list[TriggeredRule],
    moderation_status: ContentModerationStatus,
    publish_status: SnapshotPublishStatus,
    config: AutomatedModerationConfig,
) -> AutomationDecision:
    """
    Decide whether the target may be auto-hidden.

    Checks run in a fixed order and the first failing one names the
    blocked reason. A disabled feature flag overrides everything: eligibility
    is forced off and the reason becomes "auto_hide_disabled", while
    `enabled` reports the flag itself.
    """
    blocked_reason: Optional[str] = None

    if recommended_action != RecommendedAction.HIDE:
        blocked_reason = (
            BlockedReason.RECOMMENDED_ACTION_NOT_HIDE
            if triggered_rules
            else BlockedReason.NO_TRIGGERED_RULES
        )
    elif moderation_status != ContentModerationStatus.VISIBLE:
        blocked_reason = BlockedReason.ALREADY_MODERATED
    elif publish_status in (SnapshotPublishStatus.DRAFT, SnapshotPublishStatus.ARCHIVED):
        blocked_reason = BlockedReason.CONTENT_NOT_PUBLIC
    elif not is_severity_at_least(severity, config.auto_hide_min_severity):
        blocked_reason = BlockedReason.SEVERITY_BELOW_THRESHOLD
    elif not any(rule.rule in config.auto_hide_allowed_rules for rule in triggered_rules):
        blocked_reason = BlockedReason.RULE_NOT_ALLOWED
    elif config.auto_hide_actor_id is None:
        blocked_reason = BlockedReason.AUTO_HIDE_ACTOR_MISSING

    if not config.auto_hide_enabled:
        return AutomationDecision(
            enabled=False,
            eligible=False,
            blocked_reason=BlockedReason.AUTO_HIDE_DISABLED,
        )

    return AutomationDecision(
        enabled=True,
        eligible=blocked_reason is None,
        blocked_reason=blocked_reason,
    )
