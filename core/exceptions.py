"""Exception hierarchy shared by the tutor service and its HTTP layer."""

from typing import Any, Dict, Optional


class TutorError(Exception):
    """Base exception for all tutor errors."""

    status_code = 500
    error = "Server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.details = details
        super().__init__(message or self.error)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": str(self)}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidRequestError(TutorError):
    """Raised when required input is missing, before any external call."""

    status_code = 400
    error = "Invalid request"


class UpstreamServiceError(TutorError):
    """Raised when the completion service answers with a failure."""

    status_code = 500
    error = "OpenAI error"

    def __init__(self, status: Optional[int] = None, details: Any = None):
        self.status = status
        super().__init__(self.error, details=details)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.status is not None:
            payload["status"] = self.status
        return payload


class SessionNotFoundError(TutorError):
    """Raised when a session id is unknown."""

    status_code = 404
    error = "Session not found"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class SessionBusyError(TutorError):
    """Raised when a second exchange is submitted while one is in flight."""

    status_code = 409
    error = "Session busy"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} already has a request in flight")
