from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Unexpected server error."

    def __init__(self, status_code: int | None = None, code: str | None = None, message: str | None = None):
        self.status_code = status_code if status_code is not None else self.status_code
        self.code = code or self.code
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Request is invalid."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class InvalidCredentialsError(ApiError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class UnauthenticatedError(ApiError):
    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Authentication required."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


class StoreError(ApiError):
    status_code = 500
    code = "STORE_ERROR"
    default_message = "Database error."

    def __init__(self, message: str | None = None):
        super().__init__(message=message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
