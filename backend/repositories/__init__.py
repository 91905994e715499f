"""
Repository pattern implementation for data access layer.
"""

from .admin_audit_repository import AdminAuditRepository
from .automated_signal_repository import AutomatedSignalRepository
from .base import BaseRepository
from .content_moderation_event_repository import ContentModerationEventRepository

__all__ = [
    "AdminAuditRepository",
    "AutomatedSignalRepository",
    "BaseRepository",
    "ContentModerationEventRepository",
]
