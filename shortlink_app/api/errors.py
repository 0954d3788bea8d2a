"""
Boundary error handling: every failure leaves the API as the same JSON
envelope ``{"error", "message", "requestId"}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortlink_app.config import settings
from shortlink_app.errors import AppError, NotFoundError, error_body
from shortlink_app.logging_config import get_logger

logger = get_logger(__name__)

_HTTP_CATEGORIES = {
    400: "ValidationError",
    401: "AuthError",
    403: "ForbiddenError",
    404: "NotFoundError",
    405: "MethodNotAllowed",
    409: "ConflictError",
}


class RouteNotFoundError(NotFoundError):
    """Nothing is routed at this path"""

    def __init__(self, method: str, path: str):
        super().__init__("Route")
        self.message = f"The requested endpoint '{method} {path}' does not exist."


def request_id_of(request: Request):
    return getattr(request.state, "request_id", None)


def _error_response(request: Request, status_code: int, category: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(category, message, request_id_of(request)),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(
        "[%s] %s %s -> %d %s: %s",
        request_id_of(request),
        request.method,
        request.url.path,
        exc.status_code,
        exc.category,
        exc.message,
    )
    return _error_response(request, exc.status_code, exc.category, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/path/query validation failures are 400 ValidationError"""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(problems) or "Invalid request"
    logger.info("[%s] validation failed: %s", request_id_of(request), message)
    return _error_response(request, 400, "ValidationError", message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error_response(
            request,
            404,
            "NotFoundError",
            RouteNotFoundError(request.method, request.url.path).message,
        )
    category = _HTTP_CATEGORIES.get(exc.status_code, "HTTPError")
    response = _error_response(request, exc.status_code, category, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Answer for an exception nothing else handled; detail only in debug mode"""
    request_id = request_id_of(request)
    logger.error(
        "[%s] Unhandled error on %s %s",
        request_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    message = str(exc) if settings.debug else "Internal Server Error"
    return JSONResponse(status_code=500, content=error_body("InternalError", message, request_id))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
