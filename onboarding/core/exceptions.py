"""Application-level exceptions and FastAPI exception handlers."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

class AppException(Exception):
    """Base application exception.

    ``reason`` is the short name reported for the item when the error is
    collected by a bulk operation instead of being raised.
    """

    reason: str = "Error"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)

class NotFoundError(AppException):
    reason = "NotFound"

    def __init__(self, entity: str, entity_id: str | None = None):
        msg = f"{entity} not found" if not entity_id else f"{entity} '{entity_id}' not found"
        super().__init__(msg, status_code=404, code="NOT_FOUND")

class ForbiddenError(AppException):
    reason = "Forbidden"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403, code="FORBIDDEN")

class UnauthorizedError(AppException):
    reason = "Unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")

class ConflictError(AppException):
    reason = "Conflict"

    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")

class ValidationError(AppException):
    """Missing or malformed input. ``fields`` names the offending fields."""

    reason = "Validation"

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = list(fields or [])
        super().__init__(
            message,
            status_code=400,
            code="VALIDATION_ERROR",
            details={"fields": self.fields} if self.fields else None,
        )

class TokenInvalidError(AppException):
    reason = "TokenInvalid"

    def __init__(self, message: str = "Invalid setup or reset token"):
        super().__init__(message, status_code=400, code="TOKEN_INVALID")

class TokenExpiredError(AppException):
    reason = "TokenExpired"

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, status_code=410, code="TOKEN_EXPIRED")

class InvalidTransitionError(AppException):
    """The verification state machine refused an action.

    ``missing_documents`` / ``rejected_documents`` list the required document
    types that block the move.
    """

    reason = "InvalidTransition"

    def __init__(
        self,
        message: str,
        missing_documents: list[str] | None = None,
        rejected_documents: list[str] | None = None,
    ):
        self.missing_documents = list(missing_documents or [])
        self.rejected_documents = list(rejected_documents or [])
        details: dict[str, Any] = {}
        if self.missing_documents:
            details["missingDocuments"] = self.missing_documents
        if self.rejected_documents:
            details["rejectedDocuments"] = self.rejected_documents
        super().__init__(
            message,
            status_code=400,
            code="INVALID_TRANSITION",
            details=details or None,
        )

class UnsupportedMediaTypeError(AppException):
    reason = "UnsupportedMediaType"

    def __init__(self, message: str):
        super().__init__(message, status_code=415, code="UNSUPPORTED_MEDIA_TYPE")

class PayloadTooLargeError(AppException):
    reason = "PayloadTooLarge"

    def __init__(self, message: str):
        super().__init__(message, status_code=413, code="PAYLOAD_TOO_LARGE")

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed bodies are reported like every other validation failure (400)
        fields = sorted({
            ".".join(str(part) for part in err.get("loc", ())[1:]) or "body"
            for err in exc.errors()
        })
        first = exc.errors()[0].get("msg", "Invalid request") if exc.errors() else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=_error_body("VALIDATION_ERROR", first, {"fields": fields}),
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=_error_body("NOT_FOUND", "Resource not found"),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )
