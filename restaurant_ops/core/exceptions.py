"""
Workflow Error Taxonomy

Every failure the engine raises derives from WorkflowError so callers can
catch one type and still render a consistent payload. Each error carries:
    - message: human-readable description
    - code: machine-readable error code
    - recoverable: whether retrying the same call may succeed
    - suggestions: short actionable hints for the operator

Only network-origin errors are recoverable. Validation and state-machine
errors are correctable, not retryable.

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""

    code: str = "workflow_error"
    recoverable: bool = False
    default_suggestions: tuple[str, ...] = ("Please try again",)

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.suggestions = list(
            suggestions if suggestions is not None else self.default_suggestions
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
        }


class ValidationError(WorkflowError):
    """Malformed input, e.g. a missing denial reason or a lead-time violation."""

    code = "validation_error"
    default_suggestions = (
        "Please check your input and try again",
        "Make sure all required fields are filled",
    )


class InvalidTransitionError(WorkflowError):
    """A status change that the transition table does not permit."""

    code = "invalid_transition"
    default_suggestions = ("Refresh the list to see the current status",)

    def __init__(self, kind: str, current: str, target: str, reason: str = ""):
        message = f"Cannot move {kind} from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.kind = kind
        self.current = current
        self.target = target


class UnknownStateError(WorkflowError):
    """A status value that does not belong to the entity kind."""

    code = "unknown_state"
    default_suggestions = ("Use one of the documented status values",)

    def __init__(self, kind: str, state: Any):
        super().__init__(f"Unknown {kind} status: {state!r}")
        self.kind = kind
        self.state = state


class NotFoundError(WorkflowError):
    """No entity with the given identifier."""

    code = "not_found"
    default_suggestions = (
        "The requested resource was not found",
        "It may have been deleted or moved",
    )

    def __init__(self, kind: str, entity_id: Any):
        super().__init__(f"{kind.capitalize()} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class NoEligiblePersonError(WorkflowError):
    """No delivery person in the pool is available and active."""

    code = "no_eligible_person"
    default_suggestions = (
        "Set a delivery person to available",
        "Try again when a delivery person is free",
    )


class PersonNotFoundError(WorkflowError):
    """A specific delivery person was requested but is not in the pool."""

    code = "person_not_found"
    default_suggestions = ("Reload the delivery person list",)

    def __init__(self, person_id: Any):
        super().__init__(f"Delivery person {person_id} not found")
        self.person_id = person_id


class NetworkError(WorkflowError):
    """Transport failure: timeout, connection refused, DNS, etc."""

    code = "network_error"
    recoverable = True
    default_suggestions = (
        "Check your internet connection",
        "Make sure the backend is running",
        "Please try again",
    )


class ApiError(WorkflowError):
    """The backend answered with a non-2xx status."""

    code = "api_error"

    def __init__(self, status_code: int, message: str):
        super().__init__(
            message,
            code=str(status_code),
            suggestions=_suggestions_for_status(status_code),
        )
        self.status_code = status_code
        # Server errors and timeouts are worth retrying
        self.recoverable = status_code >= 500 or status_code == 408


def _suggestions_for_status(status: int) -> list[str]:
    """Get user-friendly suggestions based on HTTP status code."""
    if status == 400:
        return ["Please check your input and try again"]
    if status in (401, 403):
        return ["Please log in again", "Contact your administrator"]
    if status == 404:
        return ["The requested resource was not found"]
    if status in (408, 504):
        return ["The request took too long", "Check your internet connection"]
    if status == 409:
        return ["The resource changed on the server", "Refresh and try again"]
    if status >= 500:
        return ["The server is having trouble", "Please try again later"]
    return ["Please try again"]
