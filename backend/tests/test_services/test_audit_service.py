"""
Tests for AuditService.
"""

from core.correlation import set_correlation_id
from repositories.admin_audit_repository import AdminAuditRepository
from repositories.db_models import AuditOutcome
from services.audit_service import AuditAction, AuditScope, AuditService


class TestAuditServiceLog:
    """Tests for AuditService.log"""

    def setup_method(self) -> None:
        set_correlation_id("")

    def test_log_persists_entry(self, db_session, system_user):
        set_correlation_id("req12345")

        entry = AuditService.log(
            db_session,
            action=AuditAction.AUTOMATED_DETECTION_AUTO_HIDE,
            resource_type="content",
            method="SYSTEM",
            path="automation://moderation/content",
            status_code=200,
            outcome=AuditOutcome.SUCCESS,
            actor_id=system_user.id,
            scope=AuditScope.CONTENT_MODERATE,
            resource_id="article:1",
            metadata={"score": 24},
        )

        assert entry.id is not None
        assert entry.actor_role == "admin"
        assert entry.request_id == "req12345"
        assert entry.audit_metadata == {"score": 24}
        set_correlation_id("")

    def test_get_logs_filters(self, db_session):
        for resource_id in ("article:1", "article:2"):
            AuditService.log(
                db_session,
                action=AuditAction.AUTOMATED_DETECTION_AUTO_HIDE,
                resource_type="content",
                method="SYSTEM",
                path="automation://moderation/content",
                status_code=500,
                outcome=AuditOutcome.ERROR,
                resource_id=resource_id,
            )

        logs = AdminAuditRepository(db_session).get_logs(resource_id="article:2")

        assert len(logs) == 1
        assert logs[0].request_id is None
        assert logs[0].outcome == AuditOutcome.ERROR
