"""Request id assignment and the last-resort error boundary."""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable

from shortlink_app.api.errors import internal_error_response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Give every request a correlation id (``request.state.request_id``),
    echo it in the X-Request-ID response header, and turn any exception that
    escaped the route handlers into the standard 500 envelope.
    
    Must be the outermost middleware so every response carries the id.
    """
    
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        
        try:
            response = await call_next(request)
        except Exception as exc:
            response = internal_error_response(request, exc)
        
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
