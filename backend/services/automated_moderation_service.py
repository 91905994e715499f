"""
Automated moderation engine.

Runs on content create/update/publish: loads a snapshot of the target,
extracts text and activity signals, evaluates the detection rules, persists
the resulting signal and, when policy allows, hides the content preventively.

Usage:
    service = get_automated_moderation_service()
    result = service.evaluate_and_apply_target(
        db, ContentType.ARTICLE, article.id, TriggerSource.PUBLISH
    )
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

from core.correlation import ensure_correlation_id
from helpers.text_signals import extract_text_signals
from models.config import get_settings
from models.exceptions import ModerationTargetNotFoundException
from models.schemas import (
    AutomatedModerationConfig,
    AutomatedModerationEvaluation,
    AutomatedModerationResult,
    AutomatedModerationSummary,
    AutomationResult,
    TargetSnapshot,
)
from repositories.content_repository import ContentRepository, coerce_content_type
from repositories.db_models import (
    AuditOutcome,
    ContentModerationStatus,
    ContentType,
    ModerationAction,
    RecommendedAction,
    TriggerSource,
)
from services.activity_signals_service import ActivitySignalsService
from services.audit_service import AuditAction, AuditScope, AuditService
from services.automated_signal_service import AutomatedSignalService, target_key
from services.content_moderation_service import ContentModerationService
from services.moderation_rules import (
    BlockedReason,
    decide_automation,
    evaluate_rules,
    map_recommended_action,
    to_severity,
)

AUTO_HIDE_NOTE = "Automated detection triggered a preventive fast hide."
AUTOMATION_METHOD = "SYSTEM"
AUTOMATION_PATH = "automation://moderation/content"


class AutomatedModerationService:
    """Evaluates content targets and applies the auto-hide policy."""

    def __init__(self, config: AutomatedModerationConfig):
        self.config = config

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def evaluate_and_apply_target(
        self,
        db: Session,
        content_type: ContentType,
        content_id: int,
        trigger_source: TriggerSource,
        now: Optional[datetime] = None,
    ) -> AutomatedModerationResult:
        """
        Evaluate one content target and act on the outcome.

        Args:
            db: Database session
            content_type: One of the eight moderatable surfaces
            content_id: Target ID
            trigger_source: Lifecycle event that triggered the evaluation
            now: Reference time for activity windows (defaults to UTC now)

        Returns:
            AutomatedModerationResult with the evaluation, the stored signal
            summary and what the automation did

        Raises:
            InvalidContentTypeException: If content_type is unsupported
            ModerationTargetNotFoundException: If the target does not exist
        """
        with ensure_correlation_id():
            resolved_type = coerce_content_type(content_type)
            snapshot = ContentRepository(db).get_snapshot(resolved_type, content_id)
            if snapshot is None:
                raise ModerationTargetNotFoundException(resolved_type.value, content_id)

            evaluation = self.build_evaluation(
                db, snapshot, TriggerSource(trigger_source), now
            )
            signal = AutomatedSignalService.persist_evaluation(db, evaluation)
            automation = self.maybe_auto_hide(db, evaluation)

            if automation.attempted:
                signal = AutomatedSignalService.record_automation_outcome(
                    db,
                    evaluation.content_type,
                    evaluation.content_id,
                    evaluation.automation,
                    automation,
                )

            return AutomatedModerationResult(
                evaluation=evaluation,
                signal=AutomatedSignalService.build_summary(signal),
                automation=automation,
            )

    def evaluate_content_lifecycle(
        self,
        db: Session,
        content: Any,
        content_type: ContentType,
        trigger_source: TriggerSource,
    ) -> AutomatedModerationResult:
        """
        Hook for content services after create, update or publish.

        When the content was auto-hidden, the caller's in-memory object is
        updated too so the response reflects the hidden status.
        """
        result = self.evaluate_and_apply_target(
            db, content_type, content.id, trigger_source
        )
        if result.automation.executed:
            content.moderation_status = ContentModerationStatus.HIDDEN
        return result

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def build_evaluation(
        self,
        db: Session,
        snapshot: TargetSnapshot,
        trigger_source: TriggerSource,
        now: Optional[datetime] = None,
    ) -> AutomatedModerationEvaluation:
        """Score a snapshot and decide automation eligibility."""
        now = now or datetime.now(timezone.utc)

        text_signals = extract_text_signals(snapshot.text)
        activity_signals = ActivitySignalsService.collect_activity_signals(
            db, snapshot.content_type, snapshot.actor_user_id, now
        )

        triggered_rules = evaluate_rules(
            snapshot.content_type, text_signals, activity_signals
        )
        score = sum(rule.score for rule in triggered_rules)
        severity = to_severity(score)
        recommended_action = map_recommended_action(severity, triggered_rules)
        automation = decide_automation(
            recommended_action=recommended_action,
            severity=severity,
            triggered_rules=triggered_rules,
            moderation_status=snapshot.moderation_status,
            publish_status=snapshot.publish_status,
            config=self.config,
        )

        logger.debug(
            f"Automated evaluation {target_key(snapshot.content_type, snapshot.content_id)} "
            f"({trigger_source.value}): score={score} severity={severity.value} "
            f"action={recommended_action.value} eligible={automation.eligible} "
            f"blocked={automation.blocked_reason}"
        )

        return AutomatedModerationEvaluation(
            content_type=snapshot.content_type,
            content_id=snapshot.content_id,
            actor_user_id=snapshot.actor_user_id,
            owner_user_id=snapshot.owner_user_id,
            moderation_status=snapshot.moderation_status,
            publish_status=snapshot.publish_status,
            trigger_source=trigger_source,
            score=score,
            severity=severity,
            recommended_action=recommended_action,
            triggered_rules=triggered_rules,
            text_signals=text_signals,
            activity_signals=activity_signals,
            automation=automation,
            evaluated_at=now,
        )

    # ------------------------------------------------------------------
    # Automation
    # ------------------------------------------------------------------

    @staticmethod
    def build_auto_hide_reason(evaluation: AutomatedModerationEvaluation) -> str:
        rules = ", ".join(rule.rule.value for rule in evaluation.triggered_rules)
        return (
            "Preventive auto-hide by automated detection. "
            f"severity={evaluation.severity.value}; score={evaluation.score}; "
            f"rules={rules or 'n/a'}"
        )

    def maybe_auto_hide(
        self, db: Session, evaluation: AutomatedModerationEvaluation
    ) -> AutomationResult:
        """
        Hide the target if the evaluation is eligible.

        Failures of the hide itself are contained: they are audited and
        reported as executed=False with blocked_reason "automation_error".
        """
        if (
            evaluation.recommended_action != RecommendedAction.HIDE
            or not evaluation.automation.eligible
            or not evaluation.automation.enabled
        ):
            return AutomationResult(
                attempted=False,
                executed=False,
                blocked_reason=evaluation.automation.blocked_reason,
            )

        actor_id = self.config.auto_hide_actor_id
        if actor_id is None:
            return AutomationResult(
                attempted=False,
                executed=False,
                blocked_reason=BlockedReason.AUTO_HIDE_ACTOR_MISSING,
            )

        key = target_key(evaluation.content_type, evaluation.content_id)
        reason = self.build_auto_hide_reason(evaluation)
        base_metadata = {
            "trigger_source": evaluation.trigger_source.value,
            "severity": evaluation.severity.value,
            "score": evaluation.score,
            "triggered_rules": [rule.rule.value for rule in evaluation.triggered_rules],
        }

        try:
            hide_result = ContentModerationService.fast_hide_content(
                db,
                actor_id=actor_id,
                content_type=evaluation.content_type,
                content_id=evaluation.content_id,
                reason=reason,
                note=AUTO_HIDE_NOTE,
                metadata={"automated_detection": True, **base_metadata},
            )
        except Exception as e:
            db.rollback()
            error = str(e) or e.__class__.__name__
            logger.error(f"Automated auto-hide failed for {key}: {error}")
            self._record_audit(
                db,
                actor_id,
                key,
                reason,
                status_code=500,
                outcome=AuditOutcome.ERROR,
                metadata={**base_metadata, "error": error},
            )
            return AutomationResult(
                attempted=True,
                executed=False,
                blocked_reason=BlockedReason.AUTOMATION_ERROR,
                error=error,
            )

        logger.warning(
            f"Automated auto-hide executed for {key}: "
            f"severity={evaluation.severity.value} score={evaluation.score} "
            f"changed={hide_result.changed}"
        )
        self._record_audit(
            db,
            actor_id,
            key,
            reason,
            status_code=200,
            outcome=AuditOutcome.SUCCESS,
            metadata={
                **base_metadata,
                "changed": hide_result.changed,
                "from_status": hide_result.from_status.value,
                "to_status": hide_result.to_status.value,
            },
        )
        return AutomationResult(
            attempted=True,
            executed=True,
            action=ModerationAction.HIDE,
        )

    @staticmethod
    def _record_audit(
        db: Session,
        actor_id: int,
        resource_id: str,
        reason: str,
        status_code: int,
        outcome: AuditOutcome,
        metadata: dict[str, Any],
    ) -> None:
        """Write the auto-hide audit entry. Failures are logged, never raised."""
        try:
            AuditService.log(
                db,
                action=AuditAction.AUTOMATED_DETECTION_AUTO_HIDE,
                resource_type="content",
                method=AUTOMATION_METHOD,
                path=AUTOMATION_PATH,
                status_code=status_code,
                outcome=outcome,
                actor_id=actor_id,
                actor_role="admin",
                scope=AuditScope.CONTENT_MODERATE,
                resource_id=resource_id,
                reason=reason,
                metadata=metadata,
            )
        except Exception:
            db.rollback()
            logger.exception(f"Failed to write auto-hide audit entry for {resource_id}")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @staticmethod
    def get_summary(
        db: Session, content_type: ContentType, content_id: int
    ) -> AutomatedModerationSummary:
        return AutomatedSignalService.get_summary(db, content_type, content_id)

    @staticmethod
    def get_active_summaries(
        db: Session, targets: list[tuple[ContentType, int]]
    ) -> dict[str, AutomatedModerationSummary]:
        return AutomatedSignalService.get_active_summaries(db, targets)

    @staticmethod
    def mark_reviewed(
        db: Session,
        content_type: ContentType,
        content_id: int,
        reviewer_id: int,
        resolution_action: ModerationAction,
    ) -> AutomatedModerationSummary:
        return AutomatedSignalService.mark_reviewed(
            db, content_type, content_id, reviewer_id, resolution_action
        )


@lru_cache(maxsize=1)
def get_automated_moderation_service() -> AutomatedModerationService:
    """Get the process-wide engine built from application settings."""
    config = AutomatedModerationConfig.from_settings(get_settings())
    return AutomatedModerationService(config)
