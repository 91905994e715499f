"""
Services layer for business logic.

This package contains the automated moderation engine and the collaborators
it calls (activity counting, signal storage, fast-hide and audit logging).
"""

from .activity_signals_service import ActivitySignalsService
from .audit_service import AuditService
from .automated_moderation_service import (
    AutomatedModerationService,
    get_automated_moderation_service,
)
from .automated_signal_service import AutomatedSignalService
from .content_moderation_service import ContentModerationService

__all__ = [
    "ActivitySignalsService",
    "AuditService",
    "AutomatedModerationService",
    "AutomatedSignalService",
    "ContentModerationService",
    "get_automated_moderation_service",
]
