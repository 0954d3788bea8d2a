import asyncio
import threading

from sqlalchemy.exc import SQLAlchemyError

from conftest import TestingSessionLocal
from shortlink_app.models.click import ClickEvent
from shortlink_app.models.url import URL
from shortlink_app.services.click_service import ClickRecorder


def _create(url_service, owner, destination="https://example.com/"):
    return asyncio.run(url_service.create_short_url(owner.id, destination))


class TestLogClick:
    """Counter increment and event append"""

    def test_increments_and_appends(self, db_session, url_service, owner):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)

        outcome = asyncio.run(recorder.log_click(
            url.id,
            ip_address="10.0.0.1",
            user_agent="pytest",
            referrer="https://news.example.org/",
        ))

        assert outcome.ok
        assert outcome.clicks == 1
        event = db_session.query(ClickEvent).filter_by(url_id=url.id).one()
        assert event.ip_address == "10.0.0.1"
        assert event.user_agent == "pytest"
        assert event.referrer == "https://news.example.org/"
        assert event.created_at is not None

    def test_missing_referrer_is_direct(self, db_session, url_service, owner):
        url = _create(url_service, owner)

        asyncio.run(ClickRecorder(db_session).log_click(url.id, referrer=""))

        event = db_session.query(ClickEvent).filter_by(url_id=url.id).one()
        assert event.referrer == "direct"
        assert event.ip_address is None

    def test_returns_running_count(self, db_session, url_service, owner):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)

        counts = [asyncio.run(recorder.log_click(url.id)).clicks for _ in range(3)]

        assert counts == [1, 2, 3]

    def test_unknown_url(self, db_session):
        outcome = asyncio.run(ClickRecorder(db_session).log_click("no-such-id"))

        assert outcome.url_missing
        assert not outcome.counted
        assert db_session.query(ClickEvent).count() == 0

    def test_counter_survives_failed_append(self, db_session, url_service, owner, monkeypatch):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)

        def failing_add(instance, _warn=True):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(db_session, "add", failing_add)
        outcome = asyncio.run(recorder.log_click(url.id))
        monkeypatch.undo()

        assert outcome.counted
        assert outcome.clicks == 1
        assert not outcome.event_logged
        assert "disk full" in outcome.error
        db_session.expire_all()
        assert db_session.get(URL, url.id).clicks == 1
        assert db_session.query(ClickEvent).count() == 0

    def test_counter_failure_is_reported_not_raised(self, db_session, url_service, owner, monkeypatch):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)

        def failing_execute(*args, **kwargs):
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(db_session, "execute", failing_execute)
        outcome = asyncio.run(recorder.log_click(url.id))
        monkeypatch.undo()

        assert not outcome.counted
        assert not outcome.ok
        assert "locked" in outcome.error

    def test_concurrent_clicks_are_not_lost(self, db_session, url_service, owner):
        url_id = _create(url_service, owner).id
        visits = 20
        seen = []
        lock = threading.Lock()

        def visit():
            session = TestingSessionLocal()
            try:
                outcome = asyncio.run(ClickRecorder(session).log_click(url_id, ip_address="10.0.0.9"))
                with lock:
                    seen.append(outcome.clicks)
            finally:
                session.close()

        threads = [threading.Thread(target=visit) for _ in range(visits)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        db_session.expire_all()
        assert db_session.get(URL, url_id).clicks == visits
        assert sorted(seen) == list(range(1, visits + 1))
        assert db_session.query(ClickEvent).filter_by(url_id=url_id).count() == visits


class TestAnalytics:

    def test_no_clicks(self, db_session, url_service, owner):
        url = _create(url_service, owner)

        analytics = asyncio.run(ClickRecorder(db_session).get_analytics(url.id))

        assert analytics.url_id == url.id
        assert analytics.total_clicks == 0
        assert analytics.unique_visitors == 0
        assert analytics.top_referrers == []
        assert analytics.recent_visits == []

    def test_aggregates(self, db_session, url_service, owner):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)
        visits = [
            ("1.1.1.1", "https://a.example/"),
            ("1.1.1.1", "https://a.example/"),
            ("2.2.2.2", "https://a.example/"),
            ("2.2.2.2", None),
            ("3.3.3.3", "https://b.example/"),
        ]
        for ip, referrer in visits:
            asyncio.run(recorder.log_click(url.id, ip_address=ip, referrer=referrer))

        analytics = asyncio.run(recorder.get_analytics(url.id))

        assert analytics.total_clicks == 5
        assert analytics.unique_visitors == 3
        assert [(r.referrer, r.clicks) for r in analytics.top_referrers] == [
            ("https://a.example/", 3),
            ("direct", 1),
            ("https://b.example/", 1),
        ]
        assert len(analytics.recent_visits) == 5
        # Newest first
        assert analytics.recent_visits[0].ip_address == "3.3.3.3"
        assert analytics.recent_visits[-1].ip_address == "1.1.1.1"

    def test_limits(self, db_session, url_service, owner):
        url = _create(url_service, owner)
        recorder = ClickRecorder(db_session)
        for i in range(6):
            asyncio.run(recorder.log_click(url.id, referrer=f"https://r{i}.example/"))

        analytics = asyncio.run(recorder.get_analytics(url.id, top_referrers=2, recent_visits=3))

        assert len(analytics.top_referrers) == 2
        assert len(analytics.recent_visits) == 3
        assert analytics.total_clicks == 6
