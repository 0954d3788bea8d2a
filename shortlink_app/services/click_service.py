"""
Click accounting and analytics reads.

Recording a visit is best-effort: nothing in this module lets a storage
failure escape into the redirect path. Failures come back as a ClickOutcome
the caller may inspect or ignore.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.logging_config import get_logger
from shortlink_app.models.click import DIRECT_REFERRER, ClickEvent
from shortlink_app.models.url import URL
from shortlink_app.schemas.url import ReferrerCount, URLAnalytics, VisitResponse

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClickOutcome:
    """
    Result of one LogClick.

    counted: the counter was incremented; clicks holds the new value
    event_logged: the ClickEvent row was appended
    url_missing: no URL row with that id (deleted since the lookup)
    """
    counted: bool
    clicks: Optional[int] = None
    event_logged: bool = False
    url_missing: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.counted and self.event_logged


class ClickRecorder:
    """Appends click events and increments the per-URL counter"""

    def __init__(self, db: Session):
        self.db = db

    async def log_click(
        self,
        url_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> ClickOutcome:
        """
        Account one visit.

        The increment is a single ``clicks = clicks + 1`` statement, so
        concurrent visits never lose updates. It commits before the event is
        appended; if the append fails the count still stands.
        """
        try:
            result = self.db.execute(
                update(URL)
                .where(URL.id == url_id)
                .values(clicks=URL.clicks + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                return ClickOutcome(counted=False, url_missing=True, error="URL not found")
            # Still inside the writing transaction: this reads our own increment
            clicks = self.db.execute(select(URL.clicks).where(URL.id == url_id)).scalar_one()
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Click counter update failed for %s: %s", url_id, exc)
            return ClickOutcome(counted=False, error=str(exc))

        try:
            self.db.add(
                ClickEvent(
                    url_id=url_id,
                    ip_address=ip_address or None,
                    user_agent=user_agent or None,
                    referrer=referrer or DIRECT_REFERRER,
                )
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Click event append failed for %s: %s", url_id, exc)
            return ClickOutcome(counted=True, clicks=clicks, event_logged=False, error=str(exc))

        return ClickOutcome(counted=True, clicks=clicks, event_logged=True)

    async def get_analytics(
        self,
        url_id: str,
        top_referrers: int = None,
        recent_visits: int = None,
    ) -> URLAnalytics:
        """Aggregate the click events of one URL. Ownership is checked by the caller."""
        top_referrers = top_referrers or settings.top_referrers_limit
        recent_visits = recent_visits or settings.recent_visits_limit

        total_clicks, unique_visitors = self.db.execute(
            select(
                func.count(ClickEvent.id),
                func.count(func.distinct(ClickEvent.ip_address)),
            ).where(ClickEvent.url_id == url_id)
        ).one()

        click_count = func.count(ClickEvent.id).label("clicks")
        referrer_rows = self.db.execute(
            select(ClickEvent.referrer, click_count)
            .where(ClickEvent.url_id == url_id)
            .group_by(ClickEvent.referrer)
            .order_by(desc(click_count), ClickEvent.referrer)
            .limit(top_referrers)
        ).all()

        events = self.db.execute(
            select(ClickEvent)
            .where(ClickEvent.url_id == url_id)
            .order_by(ClickEvent.created_at.desc(), ClickEvent.id.desc())
            .limit(recent_visits)
        ).scalars()

        return URLAnalytics(
            url_id=url_id,
            total_clicks=total_clicks or 0,
            unique_visitors=unique_visitors or 0,
            top_referrers=[
                ReferrerCount(referrer=row.referrer or DIRECT_REFERRER, clicks=row.clicks)
                for row in referrer_rows
            ],
            recent_visits=[
                VisitResponse(
                    id=event.id,
                    ip_address=event.ip_address,
                    user_agent=event.user_agent,
                    referrer=event.referrer or DIRECT_REFERRER,
                    timestamp=event.created_at,
                )
                for event in events
            ],
        )
