"""Custom exception classes for the content pipeline."""

from typing import Any


class ContentPipelineError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# AI generation errors
class GenerationError(ContentPipelineError):
    """Base class for failures of one AI generation attempt."""

    # Value written to the generation log `status` column.
    log_status = "failure"


class TransportError(GenerationError):
    """AI service unreachable, returned non-2xx, timed out, or sent a malformed body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(f"AI service error: {message}", {"status_code": status_code})


class AIServiceNotConfiguredError(TransportError):
    """AI service credentials are missing."""

    def __init__(self) -> None:
        super().__init__("API key not configured")


class ResponseParseError(GenerationError):
    """AI response did not contain an extractable structured object."""

    def __init__(self, reason: str, *, excerpt: str = "") -> None:
        self.reason = reason
        self.excerpt = excerpt
        message = f"Failed to parse AI response: {reason}"
        if excerpt:
            message = f"{message}. Content: {excerpt}"
        super().__init__(message, {"reason": reason})


class ContentValidationError(GenerationError):
    """Structured content is missing required fields or is below minimum sizes."""

    log_status = "validation_error"

    def __init__(self, content_type: str, violations: list[str]) -> None:
        self.content_type = content_type
        self.violations = list(violations)
        super().__init__(
            f"Content validation failed for {content_type}: {', '.join(self.violations)}",
            {"content_type": content_type, "violations": self.violations},
        )


# Queue errors
class QueueError(ContentPipelineError):
    """Base class for work queue errors."""

    pass


class QueueItemNotFoundError(QueueError):
    """Queue item not found."""

    def __init__(self, queue_item_id: str) -> None:
        super().__init__(f"Queue item not found: {queue_item_id}")


class QueueTransitionError(QueueError):
    """Requested status transition is not allowed by the queue state machine."""

    def __init__(self, queue_item_id: str | None, current: str, target: str) -> None:
        self.current = current
        self.target = target
        label = queue_item_id or "<unsaved>"
        super().__init__(f"Illegal queue transition for {label}: {current} -> {target}")


# Seed data errors
class SeedItemNotFoundError(ContentPipelineError):
    """Seed item not found for a dimension/slug."""

    def __init__(self, dimension: str, slug: str) -> None:
        self.dimension = dimension
        self.slug = slug
        super().__init__(f"{dimension.capitalize()} seed not found: {slug}")


class InvalidTargetError(ContentPipelineError):
    """Content type and slugs do not describe a valid generation target."""

    pass
