"""
Signal store for automated moderation.

Keeps exactly one AutomatedModerationSignal per content target and moves it
through its lifecycle:

    (none) --rules fire--> active --admin review--> reviewed
                             |  ^
               no rules fire |  | rules fire again
                             v  |
                           cleared

Rows are never deleted here.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy.orm import Session

from models.exceptions import AutomatedSignalNotFoundException
from models.schemas import (
    ActivitySignals,
    AutomatedModerationEvaluation,
    AutomatedModerationSummary,
    AutomationDecision,
    AutomationResult,
    AutomationStateSummary,
    TextSignals,
    TriggeredRule,
)
from repositories import db_models
from repositories.automated_signal_repository import AutomatedSignalRepository
from repositories.content_repository import coerce_content_type
from repositories.db_models import (
    RESOLUTION_CLEARED,
    AutomationOutcome,
    ContentType,
    ModerationAction,
    RecommendedAction,
    Severity,
    SignalStatus,
)
from services.moderation_rules import BlockedReason


def target_key(content_type: ContentType, content_id: int) -> str:
    """Key used for batch summaries, e.g. "article:12"."""
    return f"{content_type.value}:{content_id}"


class AutomatedSignalService:
    """Service for persisting and reading automated moderation signals."""

    @staticmethod
    def create_empty_summary() -> AutomatedModerationSummary:
        """Summary reported for targets that never triggered a rule."""
        return AutomatedModerationSummary()

    @staticmethod
    def build_summary(
        signal: Optional[db_models.AutomatedModerationSignal],
    ) -> AutomatedModerationSummary:
        """
        Convert a stored signal into its read model.

        JSON columns are merged over defaults, so rows written before a
        signal field existed still produce a complete summary.
        """
        if signal is None:
            return AutomatedSignalService.create_empty_summary()

        return AutomatedModerationSummary(
            active=signal.status == SignalStatus.ACTIVE,
            status=signal.status,
            score=signal.score or 0,
            severity=signal.severity or Severity.NONE,
            recommended_action=signal.recommended_action or RecommendedAction.NONE,
            trigger_source=signal.trigger_source,
            triggered_rules=[
                TriggeredRule.model_validate(rule)
                for rule in (signal.triggered_rules or [])
            ],
            last_detected_at=signal.last_detected_at,
            last_evaluated_at=signal.last_evaluated_at,
            text_signals=TextSignals(**(signal.text_signals or {})),
            activity_signals=ActivitySignals(**(signal.activity_signals or {})),
            automation=AutomationStateSummary(
                enabled=bool(signal.automation_enabled),
                eligible=bool(signal.automation_eligible),
                blocked_reason=signal.automation_blocked_reason,
                attempted=bool(signal.automation_attempted),
                executed=bool(signal.automation_executed),
                action=signal.automation_action,
                last_outcome=signal.automation_last_outcome,
                last_error=signal.automation_last_error,
                last_attempt_at=signal.automation_last_attempt_at,
            ),
        )

    @staticmethod
    def persist_evaluation(
        db: Session, evaluation: AutomatedModerationEvaluation
    ) -> Optional[db_models.AutomatedModerationSignal]:
        """
        Store the outcome of an evaluation.

        Args:
            db: Database session
            evaluation: Completed evaluation

        Returns:
            The stored signal, or None when nothing fired and no signal
            existed yet

        A clean evaluation clears an existing signal (score 0, no rules,
        automation reset). A firing evaluation upserts the signal as active,
        with the automation block written as not yet attempted.
        """
        signal_repo = AutomatedSignalRepository(db)
        now = evaluation.evaluated_at
        text_signals = evaluation.text_signals.model_dump(mode="json")
        activity_signals = evaluation.activity_signals.model_dump(mode="json")

        if not evaluation.triggered_rules:
            existing = signal_repo.get_by_target(
                evaluation.content_type, evaluation.content_id
            )
            if existing is None:
                return None

            signal = signal_repo.update_fields(
                existing,
                {
                    "status": SignalStatus.CLEARED,
                    "trigger_source": evaluation.trigger_source,
                    "score": 0,
                    "severity": Severity.NONE,
                    "recommended_action": RecommendedAction.NONE,
                    "triggered_rules": [],
                    "text_signals": text_signals,
                    "activity_signals": activity_signals,
                    **AutomatedSignalService._pending_automation(
                        AutomationDecision(
                            enabled=evaluation.automation.enabled,
                            eligible=False,
                            blocked_reason=BlockedReason.NO_TRIGGERED_RULES,
                        )
                    ),
                    "last_evaluated_at": now,
                    "resolved_at": now,
                    "resolution_action": RESOLUTION_CLEARED,
                },
            )
            logger.info(
                f"Automated signal cleared for "
                f"{target_key(evaluation.content_type, evaluation.content_id)}"
            )
            return signal

        signal = signal_repo.upsert_for_target(
            evaluation.content_type,
            evaluation.content_id,
            values={
                "actor_user_id": evaluation.actor_user_id,
                "owner_user_id": evaluation.owner_user_id,
                "status": SignalStatus.ACTIVE,
                "trigger_source": evaluation.trigger_source,
                "score": evaluation.score,
                "severity": evaluation.severity,
                "recommended_action": evaluation.recommended_action,
                "triggered_rules": [
                    rule.model_dump(mode="json") for rule in evaluation.triggered_rules
                ],
                "text_signals": text_signals,
                "activity_signals": activity_signals,
                **AutomatedSignalService._pending_automation(evaluation.automation),
                "last_evaluated_at": now,
                "last_detected_at": now,
                "resolved_by": None,
                "resolved_at": None,
                "resolution_action": None,
            },
            insert_values={"first_detected_at": now},
        )
        logger.info(
            f"Automated signal active for "
            f"{target_key(evaluation.content_type, evaluation.content_id)}: "
            f"score={evaluation.score} severity={evaluation.severity.value} "
            f"rules={[rule.rule.value for rule in evaluation.triggered_rules]}"
        )
        return signal

    @staticmethod
    def record_automation_outcome(
        db: Session,
        content_type: ContentType,
        content_id: int,
        decision: AutomationDecision,
        result: AutomationResult,
        attempted_at: Optional[datetime] = None,
    ) -> Optional[db_models.AutomatedModerationSignal]:
        """
        Record what the auto-hide attempt did, leaving the score untouched.

        Returns:
            The updated signal, or None if the signal no longer exists
        """
        signal_repo = AutomatedSignalRepository(db)
        signal = signal_repo.get_by_target(content_type, content_id)
        if signal is None:
            logger.warning(
                f"No automated signal to record automation outcome for "
                f"{target_key(content_type, content_id)}"
            )
            return None

        return signal_repo.update_fields(
            signal,
            {
                "automation_enabled": decision.enabled,
                "automation_eligible": decision.eligible,
                "automation_blocked_reason": result.blocked_reason,
                "automation_attempted": result.attempted,
                "automation_executed": result.executed,
                "automation_action": result.action,
                "automation_last_outcome": (
                    AutomationOutcome.SUCCESS
                    if result.executed
                    else AutomationOutcome.ERROR
                ),
                "automation_last_error": (
                    result.error[:500] if result.error else None
                ),
                "automation_last_attempt_at": attempted_at
                or datetime.now(timezone.utc),
            },
        )

    @staticmethod
    def get_summary(
        db: Session, content_type: ContentType, content_id: int
    ) -> AutomatedModerationSummary:
        """Get the summary for one target (empty summary if none stored)."""
        resolved_type = coerce_content_type(content_type)
        signal = AutomatedSignalRepository(db).get_by_target(resolved_type, content_id)
        return AutomatedSignalService.build_summary(signal)

    @staticmethod
    def get_active_summaries(
        db: Session, targets: Iterable[tuple[ContentType, int]]
    ) -> dict[str, AutomatedModerationSummary]:
        """
        Get summaries of active signals for a batch of targets.

        Args:
            db: Database session
            targets: (content_type, content_id) pairs; duplicates are collapsed

        Returns:
            Dict keyed by "type:id"; targets without an active signal are absent
        """
        unique_targets: dict[str, tuple[ContentType, int]] = {}
        for content_type, content_id in targets:
            resolved_type = coerce_content_type(content_type)
            unique_targets[target_key(resolved_type, content_id)] = (
                resolved_type,
                content_id,
            )

        if not unique_targets:
            return {}

        rows = AutomatedSignalRepository(db).get_active_for_targets(
            unique_targets.values()
        )
        return {
            target_key(row.content_type, row.content_id): (
                AutomatedSignalService.build_summary(row)
            )
            for row in rows
        }

    @staticmethod
    def mark_reviewed(
        db: Session,
        content_type: ContentType,
        content_id: int,
        reviewer_id: int,
        resolution_action: ModerationAction,
    ) -> AutomatedModerationSummary:
        """
        Close an active signal after an admin acted on it.

        Signals that are not active are returned unchanged.

        Raises:
            AutomatedSignalNotFoundException: If no signal exists for the target
        """
        resolved_type = coerce_content_type(content_type)
        signal_repo = AutomatedSignalRepository(db)
        signal = signal_repo.get_by_target(resolved_type, content_id)
        if signal is None:
            raise AutomatedSignalNotFoundException(resolved_type.value, content_id)

        if signal.status != SignalStatus.ACTIVE:
            return AutomatedSignalService.build_summary(signal)

        signal = signal_repo.update_fields(
            signal,
            {
                "status": SignalStatus.REVIEWED,
                "resolved_by": reviewer_id,
                "resolved_at": datetime.now(timezone.utc),
                "resolution_action": ModerationAction(resolution_action).value,
            },
        )
        logger.info(
            f"Automated signal for {target_key(resolved_type, content_id)} "
            f"reviewed by user {reviewer_id} ({signal.resolution_action})"
        )
        return AutomatedSignalService.build_summary(signal)

    @staticmethod
    def _pending_automation(decision: AutomationDecision) -> dict:
        return {
            "automation_enabled": decision.enabled,
            "automation_eligible": decision.eligible,
            "automation_blocked_reason": decision.blocked_reason,
            "automation_attempted": False,
            "automation_executed": False,
            "automation_action": None,
            "automation_last_outcome": None,
            "automation_last_error": None,
            "automation_last_attempt_at": None,
        }
