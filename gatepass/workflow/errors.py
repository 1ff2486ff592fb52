"""
Typed errors raised by the gate pass workflow core.

Every error carries a machine-readable ``code`` and the structured fields the
caller needs (reference number, current status, role) so the HTTP layer can
map it to a response without parsing messages.

    WorkflowError
    |
    +-- NotFound            unknown reference number (or serial, for edits)
    +-- Forbidden           role lacks the action, or assignee mismatch
    +-- InvalidTransition   action does not match the current status
    +-- InvalidState        operation not allowed in the current stage
    +-- InvalidRequest      malformed create/update payload
    |
    +-- UnknownStatus       code outside the 13-value table (programming error)
    +-- UnknownRole         role outside the closed enumeration (programming error)
    +-- MatrixConfigError   static permission table is incomplete

All caller-facing errors are terminal for the call. The core never retries.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all workflow errors."""

    code: str = "WORKFLOW_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class NotFound(WorkflowError):
    code = "NOT_FOUND"

    def __init__(self, reference_number: str, what: str = "request") -> None:
        super().__init__(f"{what} not found: {reference_number}")
        self.reference_number = reference_number
        self.what = what


class Forbidden(WorkflowError):
    code = "FORBIDDEN"

    def __init__(self, message: str, *, role: str | None = None, action: str | None = None) -> None:
        super().__init__(message)
        self.role = role
        self.action = action


class InvalidTransition(WorkflowError):
    """Action does not apply to the request's current status.

    Raised for stale replays, stage skips and any action on a terminal
    request. Callers should re-fetch and let the user decide; it is not a
    transient fault.
    """

    code = "INVALID_TRANSITION"

    def __init__(self, reference_number: str, action: str, status: int, reason: str | None = None) -> None:
        msg = f"Cannot {action!r} request {reference_number} (status={status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.reference_number = reference_number
        self.action = action
        self.status = status
        self.reason = reason


class InvalidState(WorkflowError):
    code = "INVALID_STATE"

    def __init__(self, reference_number: str, status: int, reason: str) -> None:
        super().__init__(f"Request {reference_number} (status={status}): {reason}")
        self.reference_number = reference_number
        self.status = status
        self.reason = reason


class InvalidRequest(WorkflowError):
    code = "INVALID_REQUEST"


class UnknownStatus(WorkflowError, ValueError):
    code = "UNKNOWN_STATUS"

    def __init__(self, status: object) -> None:
        super().__init__(f"Unknown status code: {status!r}")
        self.status = status


class UnknownRole(WorkflowError, ValueError):
    code = "UNKNOWN_ROLE"

    def __init__(self, role: object) -> None:
        super().__init__(f"Unknown role: {role!r}")
        self.role = role


class MatrixConfigError(WorkflowError, ValueError):
    """Raised at import time when the static permission tables are inconsistent."""

    code = "MATRIX_CONFIG_ERROR"
