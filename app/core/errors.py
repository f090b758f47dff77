"""
Domain errors.

Every error raised by the booking / payment services derives from ``AppError``
and carries the HTTP status and the message shown to the client. The handlers
at the bottom render them as ``{"success": false, "message": ...}``.
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging_config import get_logger

logger = get_logger()


class AppError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class InvalidSignature(AppError):
    status_code = 400
    default_message = "Invalid payment signature"


class SlotUnavailable(AppError):
    status_code = 409
    default_message = "Selected time slot is no longer available"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class NotRefundable(AppError):
    status_code = 400
    default_message = "Only paid bookings can be cancelled"


class AlreadyCancelled(AppError):
    status_code = 400
    default_message = "Booking is already cancelled"


class NothingToRefund(AppError):
    status_code = 400
    default_message = "Nothing left to refund for this booking"


class RefundExceedsBalance(AppError):
    status_code = 400
    default_message = (
        "Refund amount exceeds the refundable balance. "
        "A previous refund may not be reflected yet."
    )


class GatewayError(AppError):
    """Upstream payment provider rejected or failed the request.

    The message is the provider's own, since it is actionable.
    """
    status_code = 500
    default_message = "Payment gateway error"

    def __init__(self, message: str | None = None, payload: dict | None = None):
        super().__init__(message)
        self.payload = payload or {}


class GatewayNotConfigured(AppError):
    status_code = 503
    default_message = "Payment gateway is not configured. Please contact administrator."


class StoreError(AppError):
    status_code = 500
    default_message = "Failed to save changes"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "Admin access required"


# ---------------------------------------------------------------------
# HANDLERS
# ---------------------------------------------------------------------
def _failure(status_code: int, message: str):
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path} -> {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path} -> {exc.message}")
    return _failure(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return _failure(400, message)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.url.path}")
    return _failure(500, "Something went wrong. Please try again later.")


def register_exception_handlers(app):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
