"""Domain errors surfaced through the HTTP API.

Each error carries an HTTP status code and a stable, machine-checkable
``reason`` string that clients can branch on.
"""

from __future__ import annotations


class PubloraError(Exception):
    """Base class for all errors the API reports to callers."""

    status_code: int = 500
    reason: str = "InternalError"

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        self.message = message or self.reason
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.reason, "message": self.message}


class ValidationFailed(PubloraError):
    """Request rejected at the boundary; never reaches the scheduler."""

    status_code = 400
    reason = "ValidationError"


class AuthenticationFailed(PubloraError):
    status_code = 401
    reason = "InvalidApiKey"


class PermissionDenied(PubloraError):
    """Subscription missing or tier limit reached."""

    status_code = 403
    reason = "SubscriptionRequired"


class NotFound(PubloraError):
    status_code = 404
    reason = "NotFound"


class InvalidTransition(PubloraError):
    """Operation not allowed in the post group's current status."""

    status_code = 409
    reason = "InvalidTransition"


class MediaLimitExceeded(PubloraError):
    status_code = 400
    reason = "MediaLimitExceeded"


class UpstreamError(PubloraError):
    """A platform API failed while serving a proxied request."""

    status_code = 502
    reason = "PlatformUnavailable"
