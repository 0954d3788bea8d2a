from .request_context import RequestContextMiddleware
from .headers import SecurityHeadersMiddleware
from .logging import LoggingMiddleware

__all__ = ["RequestContextMiddleware", "SecurityHeadersMiddleware", "LoggingMiddleware"]
