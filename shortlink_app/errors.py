"""
Application error taxonomy.

Every error carries an HTTP status code and a stable category name. The
category is what clients branch on; it is the ``error`` field of the JSON
error envelope returned by the API.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map to an HTTP response"""

    status_code: int = 500
    category: str = "AppError"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """400 - malformed input"""
    status_code = 400
    category = "ValidationError"


class AuthError(AppError):
    """401 - missing, invalid or expired credential"""
    status_code = 401
    category = "AuthError"

    def __init__(self, message: str = "Unauthorized", details: Optional[str] = None):
        super().__init__(message, details)


class ForbiddenError(AppError):
    """403 - authenticated but not allowed"""
    status_code = 403
    category = "ForbiddenError"

    def __init__(self, message: str = "Forbidden", details: Optional[str] = None):
        super().__init__(message, details)


class NotFoundError(AppError):
    """404 - resource absent, or not owned by the caller"""
    status_code = 404
    category = "NotFoundError"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    """409 - duplicate resource or exhausted code generation budget"""
    status_code = 409
    category = "ConflictError"


class InternalError(AppError):
    """500 - unexpected failure"""
    status_code = 500
    category = "InternalError"

    def __init__(self, message: str = "Internal Server Error", details: Optional[str] = None):
        super().__init__(message, details)


def error_body(category: str, message: str, request_id: Optional[str]) -> dict:
    """Build the JSON error envelope shared by every error response."""
    return {
        "error": category,
        "message": message,
        "requestId": request_id,
    }
