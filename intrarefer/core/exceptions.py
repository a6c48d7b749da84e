"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

class IntraReferException(HTTPException):
    """Base exception class for IntraRefer application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.extra = extra or {}

class BadRequestException(IntraReferException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST", extra: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
            extra=extra
        )

class UnauthorizedException(IntraReferException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(IntraReferException):
    """403 Forbidden"""

    def __init__(
        self,
        detail: str = "Forbidden",
        error_code: str = "FORBIDDEN",
        extra: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code,
            extra=extra
        )

class NotFoundException(IntraReferException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(IntraReferException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(IntraReferException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

class BadGatewayException(IntraReferException):
    """502 Bad Gateway"""

    def __init__(self, detail: str = "Upstream service error", error_code: str = "BAD_GATEWAY"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code
        )

class ServiceUnavailableException(IntraReferException):
    """503 Service Unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE",
        retry_after: Optional[int] = None
    ):
        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code,
            headers=headers or None
        )

# Business logic exceptions
class ApplicationLimitException(ForbiddenException):
    """Free-tier weekly application quota used up"""

    def __init__(self, limit: int):
        super().__init__(
            detail=f"Weekly application limit reached ({limit} applications per week for free users)",
            error_code="APPLICATION_LIMIT_REACHED",
            extra={"limitReached": True, "upgradeRequired": True}
        )

class SubscriptionRequiredException(ForbiddenException):
    """Premium feature requested without an active subscription"""

    def __init__(self, detail: str = "Premium subscription required for this feature"):
        super().__init__(
            detail=detail,
            error_code="SUBSCRIPTION_REQUIRED",
            extra={"subscriptionRequired": True}
        )

class InvalidStatusTransitionException(BadRequestException):
    """Status change not allowed by the state machine"""

    def __init__(self, current: str, new: str):
        super().__init__(
            detail=f"Cannot transition from {current} to {new}",
            error_code="INVALID_STATUS_TRANSITION"
        )

class DuplicateApplicationException(ConflictException):
    """Job seeker already applied to the referral"""

    def __init__(self):
        super().__init__(
            detail="You have already applied to this referral",
            error_code="DUPLICATE_APPLICATION"
        )

class InvalidPaymentException(BadRequestException):
    """Payment validation failed"""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            error_code="INVALID_PAYMENT"
        )

class PaymentAlreadyVerifiedException(BadRequestException):
    """Payment was already activated"""

    def __init__(self):
        super().__init__(
            detail="Payment already verified",
            error_code="PAYMENT_ALREADY_VERIFIED"
        )

class PaymentVerificationException(BadRequestException):
    """Client-supplied payment signature did not verify"""

    def __init__(self):
        super().__init__(
            detail="Payment verification failed",
            error_code="PAYMENT_VERIFICATION_FAILED"
        )

class InvalidWebhookSignatureException(BadRequestException):
    """Webhook body does not match its signature header"""

    def __init__(self):
        super().__init__(
            detail="Invalid webhook signature",
            error_code="INVALID_WEBHOOK_SIGNATURE"
        )

class PaymentGatewayException(BadGatewayException):
    """Gateway rejected or failed a request"""

    def __init__(self, detail: str = "Payment gateway error"):
        super().__init__(detail=detail, error_code="PAYMENT_GATEWAY_ERROR")

class PaymentGatewayTimeoutException(ServiceUnavailableException):
    """Gateway did not answer in time; outcome unknown"""

    def __init__(self, detail: str = "Payment gateway timed out, please retry"):
        super().__init__(detail=detail, error_code="PAYMENT_GATEWAY_TIMEOUT", retry_after=30)

class GatewayNotConfiguredException(ServiceUnavailableException):
    """Gateway credentials missing"""

    def __init__(self):
        super().__init__(
            detail="Payment service not configured. Please contact support.",
            error_code="PAYMENT_SERVICE_UNAVAILABLE"
        )

# Handlers
def _error_body(request: Request, code: Optional[str], message: str, **extra: Any) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "request_id": getattr(request.state, "request_id", None),
            **extra
        }
    }

async def intrarefer_exception_handler(request: Request, exc: IntraReferException) -> JSONResponse:
    """Render application exceptions in the common error envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, exc.detail, **exc.extra),
        headers=exc.headers
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic errors into field/message pairs"""
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "VALIDATION_ERROR", "Validation failed", errors=errors)
    )

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; hides internals outside debug mode"""
    logger.exception(f"Unhandled exception: {str(exc)}")

    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "INTERNAL_ERROR", detail)
    )

def register_exception_handlers(app) -> None:
    """Attach all handlers to the FastAPI app"""
    app.add_exception_handler(IntraReferException, intrarefer_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
