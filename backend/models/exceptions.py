"""
Custom domain exceptions for the application.

These exceptions are raised by the service layer and propagate to the caller
(typically a content lifecycle operation). They stay transport-agnostic so the
moderation engine can be reused from HTTP handlers, CLI tools or background
tasks alike.

Each exception carries a correlation ID for log correlation.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use the ambient correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


# Specific exceptions for automated moderation


class ModerationTargetNotFoundException(NotFoundException):
    """Content targeted by automated detection no longer exists."""

    def __init__(self, content_type: str, content_id: int):
        self.content_type = content_type
        self.content_id = content_id
        super().__init__(
            f"Moderation target {content_type}:{content_id} not found"
        )


class InvalidContentTypeException(ValidationException):
    """Content type outside the supported moderation surfaces."""

    def __init__(self, content_type: object):
        self.content_type = content_type
        super().__init__(f"Invalid content type for automated moderation: {content_type!r}")


class AutomatedSignalNotFoundException(NotFoundException):
    """No automated moderation signal exists for the target."""

    def __init__(self, content_type: str, content_id: int):
        self.content_type = content_type
        self.content_id = content_id
        super().__init__(
            f"Automated moderation signal for {content_type}:{content_id} not found"
        )
