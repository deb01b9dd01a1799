import logging
from typing import Any, List, Optional

from fastapi import Request, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from concierge.middleware.tracing import TRACE_ID_CTX_VAR

logger = logging.getLogger("concierge")


# ---------------- Domain errors ----------------
class IntakeError(Exception):
    """Base class for errors raised by the intake core."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(IntakeError):
    """Required field missing or out of range."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class PersistenceError(IntakeError):
    """The backing store rejected a read or write, or retries were exhausted."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class NotFoundError(IntakeError):
    status_code = status.HTTP_404_NOT_FOUND


class NotAuthenticatedError(IntakeError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidStatusTransition(IntakeError):
    status_code = status.HTTP_409_CONFLICT


class PartialUploadFailure(IntakeError):
    """Some attachments failed after the parent submission row was created."""

    status_code = status.HTTP_207_MULTI_STATUS

    def __init__(self, submission_id: str, failed_files: List[str]):
        super().__init__(
            f"{len(failed_files)} attachment(s) could not be uploaded",
            details={"submission_id": submission_id, "failed_files": list(failed_files)},
        )
        self.submission_id = submission_id
        self.failed_files = list(failed_files)


# ---------------- HTTP envelope ----------------
def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        429: "TOO_MANY_REQUESTS",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def _envelope(status_code: int, message: str, details: Any = None) -> JSONResponse:
    body = {"code": status_to_code(status_code), "message": message, "trace_id": TRACE_ID_CTX_VAR.get()}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body)


async def handle_http_exception(request: Request, exc: HTTPException):
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    return _envelope(exc.status_code, message, detail)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, "Request validation failed", exc.errors())


async def handle_intake_error(request: Request, exc: IntakeError):
    logger.warning({
        "function": "handle_intake_error",
        "error": type(exc).__name__,
        "path": str(request.url.path),
        "message": exc.message,
    })
    return _envelope(exc.status_code, exc.message, exc.details)


async def handle_unhandled_exception(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        str(exc),
    )
