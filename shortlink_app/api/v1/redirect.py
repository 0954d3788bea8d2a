from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from shortlink_app.api.errors import RouteNotFoundError
from shortlink_app.dependencies import get_redirect_resolver
from shortlink_app.logging_config import get_logger
from shortlink_app.services.redirect_service import PassThrough, RedirectResolver, Visit

router = APIRouter(tags=["redirect"])
logger = get_logger(__name__)


@router.get("/{short_code}", status_code=status.HTTP_301_MOVED_PERMANENTLY)
async def redirect_to_original_url(
    short_code: str,
    request: Request,
    resolver: RedirectResolver = Depends(get_redirect_resolver)
):
    """
    Redirect to the original URL.
    
    Flow:
    1. Reject segments that cannot be short codes (fall through to 404)
    2. Look up the code (cache first)
    3. Count the click, then push the new count to the owner's live sessions
    4. 301 to the destination
    
    Step 3 is best-effort; its failures only get logged.
    """
    outcome = await resolver.resolve(
        short_code,
        Visit(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
        ),
    )

    if isinstance(outcome, PassThrough):
        raise RouteNotFoundError(request.method, request.url.path)

    if not outcome.click.ok:
        logger.warning("Visit to %s only partially recorded: %s", short_code, outcome.click.error)

    return RedirectResponse(url=outcome.destination, status_code=status.HTTP_301_MOVED_PERMANENTLY)
