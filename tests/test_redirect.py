"""Redirect resolution, click accounting and live notification."""
import asyncio

import pytest

from test_broadcaster import FakeConnection
from shortlink_app.errors import NotFoundError
from shortlink_app.live.broadcaster import ClickBroadcaster
from shortlink_app.models.url import URL
from shortlink_app.services.click_service import ClickRecorder
from shortlink_app.services.redirect_service import (
    PassThrough,
    Redirect,
    RedirectResolver,
    Visit,
)


class ExplodingBroadcaster(ClickBroadcaster):
    async def publish(self, owner_id, url_id, clicks):
        raise RuntimeError("broadcaster down")


@pytest.fixture
def resolver(db_session, url_service, broadcaster):
    return RedirectResolver(url_service, ClickRecorder(db_session), broadcaster)


class TestRedirectResolver:

    @pytest.mark.parametrize("segment", ["api", "docs", "health", "favicon.ico", "ws", "ab", "bad-code"])
    def test_reserved_or_malformed_passes_through(self, resolver, segment):
        assert asyncio.run(resolver.resolve(segment)) == PassThrough(segment=segment)

    def test_unknown_code(self, resolver):
        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve("zzzzzz"))

    def test_redirect_counts_and_notifies(self, resolver, url_service, owner, broadcaster):
        url = asyncio.run(url_service.create_short_url(owner.id, "https://example.com/"))
        connection = FakeConnection()
        broadcaster.join(connection, owner.id)

        outcome = asyncio.run(resolver.resolve(url.short_code, Visit(ip_address="1.2.3.4")))

        assert isinstance(outcome, Redirect)
        assert outcome.destination == "https://example.com/"
        assert outcome.click.ok
        assert outcome.click.clicks == 1
        assert outcome.broadcast.delivered == 1
        assert connection.sent[0]["data"] == {
            "urlId": url.id,
            "clicks": 1,
            "timestamp": connection.sent[0]["data"]["timestamp"],
        }

    def test_destination_without_scheme_gets_https(self, resolver, url_service, owner, db_session):
        url = asyncio.run(url_service.create_short_url(owner.id, "https://example.com/"))
        # Rows written before normalization may lack a scheme
        url.original_url = "example.com/legacy"
        db_session.commit()
        asyncio.run(url_service.forget(url.short_code))

        outcome = asyncio.run(resolver.resolve(url.short_code))

        assert outcome.destination == "https://example.com/legacy"

    def test_broadcast_failure_does_not_block_redirect(self, db_session, url_service, owner):
        url = asyncio.run(url_service.create_short_url(owner.id, "https://example.com/"))
        resolver = RedirectResolver(url_service, ClickRecorder(db_session), ExplodingBroadcaster())

        outcome = asyncio.run(resolver.resolve(url.short_code))

        assert isinstance(outcome, Redirect)
        assert outcome.click.clicks == 1
        assert outcome.broadcast.error == "broadcaster down"

    def test_stale_cache_entry_is_not_found(self, resolver, url_service, owner, db_session, cache):
        url = asyncio.run(url_service.create_short_url(owner.id, "https://example.com/"))
        code = url.short_code
        # Delete behind the service's back so the cached mapping survives
        db_session.delete(db_session.get(URL, url.id))
        db_session.commit()
        assert asyncio.run(cache.get(f"url:{code}")) is not None

        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve(code))
        assert asyncio.run(cache.get(f"url:{code}")) is None


class TestRedirectEndpoint:

    def _create(self, client, headers, original_url="https://www.github.com/"):
        response = client.post("/api/urls", json={"originalUrl": original_url}, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    def test_redirect_url(self, client, alice_headers):
        created = self._create(client, alice_headers)

        response = client.get(f"/{created['shortCode']}", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "https://www.github.com/"

        detail = client.get(f"/api/urls/detail/{created['id']}", headers=alice_headers)
        assert detail.json()["clicks"] == 1

    def test_redirect_records_visit(self, client, alice_headers, db_session):
        created = self._create(client, alice_headers)

        client.get(
            f"/{created['shortCode']}",
            headers={"Referer": "https://news.example.org/", "User-Agent": "pytest-agent"},
            follow_redirects=False,
        )

        analytics = client.get(f"/api/urls/analytics/{created['id']}", headers=alice_headers).json()
        visit = analytics["recentVisits"][0]
        assert visit["referrer"] == "https://news.example.org/"
        assert visit["userAgent"] == "pytest-agent"
        assert visit["ipAddress"] == "testclient"

    def test_redirect_nonexistent_url(self, client):
        response = client.get("/zzzzzz", follow_redirects=False)

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"
        assert response.json()["message"] == "URL not found"

    def test_reserved_segment_is_route_not_found(self, client):
        response = client.get("/api", follow_redirects=False)

        assert response.status_code == 404
        assert response.json()["message"] == "The requested endpoint 'GET /api' does not exist."

    def test_docs_and_health_are_not_shadowed(self, client):
        assert client.get("/docs").status_code == 200
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "ok"
