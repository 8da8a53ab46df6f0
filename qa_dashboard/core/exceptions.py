"""
Application-wide exception hierarchy.

Services raise these; the app factory registers one error handler per
type so every blueprint gets the same JSON body and HTTP status.

Usage:
    from qa_dashboard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Bug", resource_id=42)
    raise ValidationError("Invalid status", details={"status": "must be one of ..."})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Bug", "TestCase").
        resource_id: The PK that was looked up. Included in logs, not in the HTTP body.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input violates a field rule in the service layer.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AIServiceError(Exception):
    """Raised when the completion provider call fails.

    Maps to HTTP 502. Not retried.

    Args:
        provider: Provider name that failed (openai / anthropic / local).
        message: Underlying error text.
        usage: AIUsageLog column values for the failed call. The 502 handler
            writes them again after rolling back the request transaction.
    """

    def __init__(self, provider: str, message: str, usage: dict | None = None) -> None:
        self.provider = provider
        self.usage = usage or {}
        super().__init__(f"{provider} completion failed: {message}")
