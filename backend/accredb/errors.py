"""
Typed errors raised by the accreditation core.

Services raise these; only the HTTP layer turns them into responses.
`retryable` tells the caller (or a checkpoint client) whether repeating
the same request can succeed. The core itself never retries.
"""

from __future__ import annotations

from typing import Dict, List, Optional

ErrorDetail = List[Dict[str, str]]


class ServiceError(Exception):
    code = "error"
    http_status = 400
    retryable = False

    def __init__(self, message: str, *, detail: Optional[ErrorDetail] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: ErrorDetail = detail or []

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "detail": self.detail,
            "retryable": self.retryable,
        }


class NotFound(ServiceError):
    code = "not_found"
    http_status = 404


class InvalidTransition(ServiceError):
    code = "invalid_transition"
    http_status = 409

    def __init__(self, current: str, attempted: str, *, message: Optional[str] = None) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(
            message or f"Cannot transition from {current} to {attempted}",
            detail=[{"field": "status", "reason": f"Cannot transition from {current} to {attempted}"}],
        )


class Unauthorized(ServiceError):
    code = "unauthorized"
    http_status = 403


class ValidationFailed(ServiceError):
    code = "validation_failed"
    http_status = 422


class Conflict(ServiceError):
    code = "conflict"
    http_status = 409
    retryable = True


class Transient(ServiceError):
    code = "transient"
    http_status = 503
    retryable = True
