"""
Standardized error handling for the EquipTrack backend
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import uuid

ERROR_REGISTRY = {
    400: ("EQT-400", "Bad Request: General validation error", False),
    401: ("EQT-401", "Unauthorized: Invalid or expired JWT", False),
    403: ("EQT-403", "Forbidden: You do not have access to this resource", False),
    404: ("EQT-404", "Not Found: Resource does not exist", False),
    409: ("EQT-409", "Conflict: Request conflicts with current state", False),
    422: ("EQT-422", "Unprocessable Entity: Semantic validation error", False),
    500: ("EQT-500", "Internal Server Error: Generic server failure", True),
    503: ("EQT-503", "Service Unavailable: Downstream dependency failure", True),
}


class DomainError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500
    error_code = None

    def __init__(self, message: str = None):
        code, default_message, retryable = ERROR_REGISTRY[self.status_code]
        self.message = message or default_message
        self.retryable = retryable
        if self.error_code is None:
            self.error_code = code
        super().__init__(self.message)


class NotFoundError(DomainError):
    """Referenced record or item does not exist."""
    status_code = 404


class AuthorizationError(DomainError):
    """
    Caller lacks rights over the record or notification.

    The message never says why, so existence of other users' records is
    not revealed.
    """
    status_code = 403

    def __init__(self, message: str = None):
        super().__init__(ERROR_REGISTRY[403][1])


class IllegalTransitionError(DomainError):
    """Status change not permitted from the current state."""
    status_code = 409
    error_code = "EQT-409-TRANSITION"


class ItemNotAvailableError(DomainError):
    """Request created or approved against an item that is not AVAILABLE."""
    status_code = 409
    error_code = "EQT-409-ITEM"


class InvalidRequestError(DomainError):
    """Input is well-formed but inconsistent with the record."""
    status_code = 422


class CertificateUnavailableError(DomainError):
    """Calibration has no finalized certificate yet."""
    status_code = 409
    error_code = "EQT-409-CERTIFICATE"


class DependencyUnavailableError(DomainError):
    """Store or downstream service unreachable."""
    status_code = 503


def _error_body(error_code: str, message, retryable: bool) -> dict:
    return {
        "transaction_id": str(uuid.uuid4()),
        "error_code": error_code,
        "message": message,
        "retryable": retryable
    }


async def error_handler(request: Request, exc: HTTPException):
    """Standardized error handler for all HTTP exceptions"""
    error_code, message, retryable = ERROR_REGISTRY.get(
        exc.status_code,
        ("EQT-500", "Internal Server Error", True)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(error_code, exc.detail or message, retryable),
        headers=getattr(exc, "headers", None),
    )


async def domain_error_handler(request: Request, exc: DomainError):
    """Render service-layer errors in the same envelope as HTTP errors"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.retryable)
    )
