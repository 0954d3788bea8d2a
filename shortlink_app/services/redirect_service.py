"""
Short code → redirect, with click accounting and live notification.

Terminal states of one resolve():
- Redirect: the code exists; the visit was (best-effort) recorded
- PassThrough: the segment is reserved or is not shaped like a code, so it
  belongs to whatever else routes top-level paths
- NotFoundError: well-formed code with no record
"""

from dataclasses import dataclass
from typing import Optional, Union

from shortlink_app.errors import NotFoundError
from shortlink_app.live.broadcaster import ClickBroadcaster, PublishOutcome
from shortlink_app.logging_config import get_logger
from shortlink_app.services.click_service import ClickOutcome, ClickRecorder
from shortlink_app.services.short_code_strategies import is_valid_short_code
from shortlink_app.services.url_service import URLService, ensure_scheme

logger = get_logger(__name__)

RESERVED_PATHS = frozenset({
    "api",
    "docs",
    "redoc",
    "health",
    "openapi.json",
    "favicon.ico",
    "ws",
})


@dataclass(frozen=True)
class Visit:
    """Best-effort request metadata"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


@dataclass(frozen=True)
class PassThrough:
    segment: str


@dataclass(frozen=True)
class Redirect:
    destination: str
    url_id: str
    click: ClickOutcome
    broadcast: Optional[PublishOutcome] = None


class RedirectResolver:
    """Dependencies are injected; the broadcaster is never looked up globally"""

    def __init__(
        self,
        url_service: URLService,
        click_recorder: ClickRecorder,
        broadcaster: ClickBroadcaster,
    ):
        self.url_service = url_service
        self.click_recorder = click_recorder
        self.broadcaster = broadcaster

    async def resolve(self, short_code: str, visit: Visit = Visit()) -> Union[Redirect, PassThrough]:
        """
        Raises:
            NotFoundError: well-formed code that maps to nothing
        """
        if short_code in RESERVED_PATHS or not is_valid_short_code(short_code):
            return PassThrough(segment=short_code)

        target = await self.url_service.resolve_target(short_code)
        if target is None:
            raise NotFoundError("URL")

        click = await self.click_recorder.log_click(
            target.url_id,
            ip_address=visit.ip_address,
            user_agent=visit.user_agent,
            referrer=visit.referrer,
        )
        if click.url_missing:
            # Stale cache entry for a URL deleted since it was cached
            await self.url_service.forget(short_code)
            raise NotFoundError("URL")

        broadcast = None
        if click.counted:
            broadcast = await self._notify(target.owner_id, target.url_id, click.clicks)

        return Redirect(
            destination=ensure_scheme(target.original_url),
            url_id=target.url_id,
            click=click,
            broadcast=broadcast,
        )

    async def _notify(self, owner_id: str, url_id: str, clicks: int) -> PublishOutcome:
        try:
            return await self.broadcaster.publish(owner_id, url_id, clicks)
        except Exception as exc:
            logger.warning("Live update for %s failed: %s", url_id, exc)
            return PublishOutcome(error=str(exc))
