"""
Tests for AutomatedModerationService (end-to-end engine behaviour).
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from models.exceptions import (
    InvalidContentTypeException,
    ModerationTargetNotFoundException,
)
from models.schemas import AutomatedModerationConfig
from repositories.db_models import (
    AdminAuditLog,
    AuditOutcome,
    AutomatedModerationSignal,
    AutomatedRule,
    AutomationOutcome,
    ContentModerationEvent,
    ContentModerationStatus,
    ContentPublishStatus,
    ContentType,
    ModerationAction,
    RecommendedAction,
    Severity,
    SignalStatus,
    TriggerSource,
)
from services.audit_service import AuditAction
from services.automated_moderation_service import (
    AUTO_HIDE_NOTE,
    AutomatedModerationService,
    get_automated_moderation_service,
)
from services.moderation_rules import BlockedReason


@pytest.fixture
def engine_disabled(disabled_config):
    return AutomatedModerationService(disabled_config)


@pytest.fixture
def engine_enabled(enabled_config):
    return AutomatedModerationService(enabled_config)


class TestEvaluateAndApplyTarget:
    """Tests for AutomatedModerationService.evaluate_and_apply_target"""

    def test_spam_with_shortener_links_is_critical(
        self, db_session, test_user, make_content, engine_disabled, spam_text
    ):
        """Repetitive text with shortener links triggers spam and suspicious_link."""
        article = make_content(ContentType.ARTICLE, test_user, title="Deal", content=spam_text)

        result = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.CREATE
        )

        evaluation = result.evaluation
        rules = {rule.rule: rule for rule in evaluation.triggered_rules}
        assert set(rules) == {AutomatedRule.SPAM, AutomatedRule.SUSPICIOUS_LINK}
        assert rules[AutomatedRule.SUSPICIOUS_LINK].score >= 6
        assert evaluation.score == sum(rule.score for rule in evaluation.triggered_rules)
        assert evaluation.score >= 12
        assert evaluation.severity == Severity.CRITICAL
        assert evaluation.recommended_action == RecommendedAction.HIDE
        assert evaluation.activity_signals.same_surface_last_10m == 1

        assert result.signal.active is True
        assert result.signal.score == evaluation.score
        assert result.automation.attempted is False
        assert result.automation.blocked_reason == BlockedReason.AUTO_HIDE_DISABLED

    def test_fifth_article_in_ten_minutes_floods(
        self, db_session, test_user, make_content, engine_disabled
    ):
        """Innocuous text but high cadence triggers flood and mass_creation."""
        now = datetime.now(timezone.utc)
        articles = [
            make_content(
                ContentType.ARTICLE,
                test_user,
                title=f"Garden journal {topic}",
                description=f"Notes about {topic} grown this season.",
                created_at=now - timedelta(minutes=index),
            )
            for index, topic in enumerate(
                ["tomatoes", "carrots", "lettuce", "peppers", "pumpkins"]
            )
        ]

        result = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, articles[0].id, TriggerSource.PUBLISH, now=now
        )

        evaluation = result.evaluation
        rule_names = [rule.rule for rule in evaluation.triggered_rules]
        assert AutomatedRule.SPAM not in rule_names
        assert AutomatedRule.SUSPICIOUS_LINK not in rule_names
        assert AutomatedRule.FLOOD in rule_names
        assert AutomatedRule.MASS_CREATION in rule_names
        assert evaluation.activity_signals.same_surface_last_10m == 5
        assert evaluation.activity_signals.portfolio_last_10m == 5

    def test_clean_comment_creates_no_signal(
        self, db_session, test_user, make_content, engine_disabled, clean_text
    ):
        comment = make_content(ContentType.COMMENT, test_user, content=clean_text)

        result = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.COMMENT, comment.id, TriggerSource.CREATE
        )

        assert result.evaluation.triggered_rules == []
        assert result.evaluation.recommended_action == RecommendedAction.NONE
        assert result.evaluation.automation.blocked_reason == BlockedReason.AUTO_HIDE_DISABLED
        assert result.signal.status == "none"
        assert result.automation.attempted is False
        assert db_session.query(AutomatedModerationSignal).count() == 0

    def test_reevaluation_is_idempotent(
        self, db_session, test_user, make_content, engine_disabled, spam_text
    ):
        """Evaluating the same target twice keeps one signal."""
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)

        first = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.CREATE
        )
        second = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.UPDATE
        )

        assert db_session.query(AutomatedModerationSignal).count() == 1
        assert second.signal.score == first.signal.score
        assert second.signal.trigger_source == TriggerSource.UPDATE

    def test_edit_to_clean_text_clears_signal(
        self, db_session, test_user, make_content, engine_disabled, spam_text
    ):
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)
        engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.CREATE
        )

        article.content = "A calm overview of composting methods for small gardens."
        db_session.commit()
        result = engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.UPDATE
        )

        assert result.signal.status == SignalStatus.CLEARED
        assert result.signal.score == 0
        assert result.signal.automation.eligible is False
        signal = db_session.query(AutomatedModerationSignal).one()
        assert signal.resolution_action == "cleared"

    def test_missing_target_raises(self, db_session, engine_disabled):
        with pytest.raises(ModerationTargetNotFoundException):
            engine_disabled.evaluate_and_apply_target(
                db_session, ContentType.PODCAST, 404, TriggerSource.CREATE
            )

    def test_invalid_content_type_raises(self, db_session, engine_disabled):
        with pytest.raises(InvalidContentTypeException):
            engine_disabled.evaluate_and_apply_target(
                db_session, "idea", 1, TriggerSource.CREATE
            )


class TestAutoHide:
    """Tests for the preventive auto-hide path"""

    def test_auto_hide_executes(
        self, db_session, test_user, system_user, make_content, engine_enabled, spam_text
    ):
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)

        result = engine_enabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.PUBLISH
        )

        assert result.evaluation.automation.eligible is True
        assert result.automation.attempted is True
        assert result.automation.executed is True
        assert result.automation.action == ModerationAction.HIDE
        assert result.automation.error is None

        db_session.refresh(article)
        assert article.moderation_status == ContentModerationStatus.HIDDEN
        assert article.hidden_at is not None

        event = db_session.query(ContentModerationEvent).one()
        assert event.actor_id == system_user.id
        assert event.action == ModerationAction.HIDE
        assert event.from_status == ContentModerationStatus.VISIBLE
        assert event.to_status == ContentModerationStatus.HIDDEN
        assert event.note == AUTO_HIDE_NOTE
        assert event.reason.startswith("Preventive auto-hide by automated detection.")
        assert "severity=critical" in event.reason
        assert "rules=spam, suspicious_link" in event.reason

        audit = db_session.query(AdminAuditLog).one()
        assert audit.action == AuditAction.AUTOMATED_DETECTION_AUTO_HIDE
        assert audit.scope == "admin.content.moderate"
        assert audit.resource_type == "content"
        assert audit.resource_id == f"article:{article.id}"
        assert audit.method == "SYSTEM"
        assert audit.path == "automation://moderation/content"
        assert audit.status_code == 200
        assert audit.outcome == AuditOutcome.SUCCESS
        assert audit.audit_metadata["changed"] is True
        assert audit.audit_metadata["to_status"] == "hidden"

        assert result.signal.automation.executed is True
        assert result.signal.automation.last_outcome == AutomationOutcome.SUCCESS
        assert result.signal.automation.last_attempt_at is not None
        assert result.signal.score == result.evaluation.score

    def test_draft_content_is_not_hidden(
        self, db_session, test_user, make_content, engine_enabled, spam_text
    ):
        article = make_content(
            ContentType.ARTICLE,
            test_user,
            content=spam_text,
            status=ContentPublishStatus.DRAFT,
        )

        result = engine_enabled.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.CREATE
        )

        assert result.automation.attempted is False
        assert result.automation.blocked_reason == BlockedReason.CONTENT_NOT_PUBLIC
        assert db_session.query(ContentModerationEvent).count() == 0

    def test_already_hidden_content_is_skipped(
        self, db_session, test_user, make_content, engine_enabled, spam_text
    ):
        comment = make_content(
            ContentType.COMMENT,
            test_user,
            content=spam_text,
            moderation_status=ContentModerationStatus.HIDDEN,
        )

        result = engine_enabled.evaluate_and_apply_target(
            db_session, ContentType.COMMENT, comment.id, TriggerSource.UPDATE
        )

        assert result.automation.attempted is False
        assert result.automation.blocked_reason == BlockedReason.ALREADY_MODERATED

    def test_hide_failure_is_contained(
        self, db_session, test_user, make_content, engine_enabled, spam_text
    ):
        """A failing hide is audited and reported, but the evaluation succeeds."""
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)

        with patch(
            "services.automated_moderation_service.ContentModerationService.fast_hide_content",
            side_effect=RuntimeError("store unavailable"),
        ):
            result = engine_enabled.evaluate_and_apply_target(
                db_session, ContentType.ARTICLE, article.id, TriggerSource.PUBLISH
            )

        assert result.automation.attempted is True
        assert result.automation.executed is False
        assert result.automation.blocked_reason == BlockedReason.AUTOMATION_ERROR
        assert result.automation.error == "store unavailable"
        assert result.automation.action is None

        assert result.signal.active is True
        assert result.signal.automation.last_outcome == AutomationOutcome.ERROR
        assert result.signal.automation.last_error == "store unavailable"

        audit = db_session.query(AdminAuditLog).one()
        assert audit.outcome == AuditOutcome.ERROR
        assert audit.status_code == 500
        assert audit.audit_metadata["error"] == "store unavailable"

        db_session.refresh(article)
        assert article.moderation_status == ContentModerationStatus.VISIBLE

    def test_audit_failure_is_swallowed(
        self, db_session, test_user, make_content, engine_enabled, spam_text
    ):
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)

        with patch(
            "services.automated_moderation_service.AuditService.log",
            side_effect=RuntimeError("audit store down"),
        ):
            result = engine_enabled.evaluate_and_apply_target(
                db_session, ContentType.ARTICLE, article.id, TriggerSource.PUBLISH
            )

        assert result.automation.executed is True
        assert db_session.query(AdminAuditLog).count() == 0

    def test_missing_actor_blocks_before_attempt(
        self, db_session, test_user, make_content, spam_text
    ):
        engine = AutomatedModerationService(
            AutomatedModerationConfig(auto_hide_enabled=True)
        )
        article = make_content(ContentType.ARTICLE, test_user, content=spam_text)

        result = engine.evaluate_and_apply_target(
            db_session, ContentType.ARTICLE, article.id, TriggerSource.CREATE
        )

        assert result.evaluation.automation.eligible is False
        assert result.automation.attempted is False
        assert result.automation.blocked_reason == BlockedReason.AUTO_HIDE_ACTOR_MISSING

    def test_auto_hide_reason_without_rules(self, engine_disabled):
        evaluation = SimpleNamespace(
            triggered_rules=[], severity=Severity.NONE, score=0
        )
        assert AutomatedModerationService.build_auto_hide_reason(evaluation) == (
            "Preventive auto-hide by automated detection. severity=none; score=0; rules=n/a"
        )


class TestEvaluateContentLifecycle:
    """Tests for AutomatedModerationService.evaluate_content_lifecycle"""

    def test_hidden_status_reflected_on_caller_object(
        self, db_session, test_user, make_content, engine_enabled, spam_text
    ):
        """The caller's own copy of the content shows the hidden status."""
        review = make_content(ContentType.REVIEW, test_user, content=spam_text)
        caller_copy = SimpleNamespace(
            id=review.id, moderation_status=ContentModerationStatus.VISIBLE
        )

        result = engine_enabled.evaluate_content_lifecycle(
            db_session, caller_copy, ContentType.REVIEW, TriggerSource.CREATE
        )

        assert result.automation.executed is True
        assert caller_copy.moderation_status == ContentModerationStatus.HIDDEN

    def test_visible_status_untouched_when_not_executed(
        self, db_session, test_user, make_content, engine_disabled, spam_text
    ):
        book = make_content(ContentType.BOOK, test_user, content=spam_text)

        engine_disabled.evaluate_content_lifecycle(
            db_session, book, ContentType.BOOK, TriggerSource.PUBLISH
        )

        assert book.moderation_status == ContentModerationStatus.VISIBLE


class TestReadSide:
    """Tests for summary reads through the engine"""

    def test_get_summary_and_mark_reviewed(
        self, db_session, test_user, other_user, make_content, engine_disabled, spam_text
    ):
        video = make_content(ContentType.VIDEO, test_user, content=spam_text)
        engine_disabled.evaluate_and_apply_target(
            db_session, ContentType.VIDEO, video.id, TriggerSource.CREATE
        )

        assert engine_disabled.get_summary(db_session, ContentType.VIDEO, video.id).active
        assert list(
            engine_disabled.get_active_summaries(db_session, [(ContentType.VIDEO, video.id)])
        ) == [f"video:{video.id}"]

        summary = engine_disabled.mark_reviewed(
            db_session, ContentType.VIDEO, video.id, other_user.id, ModerationAction.UNHIDE
        )

        assert summary.status == SignalStatus.REVIEWED
        assert engine_disabled.get_active_summaries(
            db_session, [(ContentType.VIDEO, video.id)]
        ) == {}


class TestGetAutomatedModerationService:
    """Tests for get_automated_moderation_service"""

    def test_built_from_settings(self):
        """Defaults: auto-hide off, critical minimum, three allowed rules."""
        get_automated_moderation_service.cache_clear()
        service = get_automated_moderation_service()

        assert service is get_automated_moderation_service()
        assert service.config.auto_hide_enabled is False
        assert service.config.auto_hide_min_severity == Severity.CRITICAL
        assert service.config.auto_hide_allowed_rules == (
            AutomatedRule.SPAM,
            AutomatedRule.SUSPICIOUS_LINK,
            AutomatedRule.MASS_CREATION,
        )
        get_automated_moderation_service.cache_clear()
