"""
Client for the live click-update channel.

    client = LiveUpdatesClient("ws://127.0.0.1:8000/ws", user_id, token=access_token)
    client.on_url_clicked(lambda data: print(data["urlId"], data["clicks"]))
    await client.run()

The room is re-joined after every reconnect. Reconnection is bounded: after
``max_attempts`` consecutive failed sessions run() raises ConnectionError.
"""

import asyncio
import inspect
import json
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from shortlink_app.live.broadcaster import URL_CLICKED_EVENT
from shortlink_app.logging_config import get_logger
from shortlink_app.schemas.live import LiveControlEvent

logger = get_logger(__name__)

Handler = Callable[[Dict[str, Any]], Any]


class LiveUpdatesClient:

    def __init__(
        self,
        server_url: str,
        user_id: str,
        token: Optional[str] = None,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 5.0,
    ):
        self.server_url = server_url
        self.user_id = user_id
        self.token = token
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._handlers: Dict[str, Handler] = {}
        self._unsubscribers: Dict[str, Callable[[], None]] = {}
        self._connection = None
        self._stopped = asyncio.Event()

    @property
    def url(self) -> str:
        if not self.token:
            return self.server_url
        separator = "&" if "?" in self.server_url else "?"
        return f"{self.server_url}{separator}{urlencode({'token': self.token})}"

    def on(self, event: str, callback: Handler) -> Callable[[], None]:
        """
        Register callback for event.

        At most one registration per event type is active. Calling this again
        while one is registered changes nothing and returns the existing
        unsubscribe function, so re-subscribing never doubles deliveries.
        """
        if event in self._handlers:
            logger.debug("Listener for %s already registered, skipping", event)
            return self._unsubscribers[event]

        self._handlers[event] = callback

        def unsubscribe() -> None:
            if self._handlers.get(event) is callback:
                del self._handlers[event]
                self._unsubscribers.pop(event, None)

        self._unsubscribers[event] = unsubscribe
        return unsubscribe

    def on_url_clicked(self, callback: Handler) -> Callable[[], None]:
        return self.on(URL_CLICKED_EVENT, callback)

    def backoff_delay(self, failures: int) -> float:
        """Delay before reconnect number `failures` (1-based)"""
        return min(self.base_delay * (2 ** max(failures - 1, 0)), self.max_delay)

    async def dispatch(self, raw: str) -> bool:
        """Deliver one server message. Returns True when a handler ran."""
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON live message: %r", raw[:200])
            return False
        if not isinstance(message, dict):
            return False

        event = message.get("event")
        if event == "error":
            logger.warning("Live channel error: %s", message.get("message"))
        handler = self._handlers.get(event)
        if handler is None:
            return False

        try:
            result = handler(message.get("data") or {})
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Live update handler for %s failed", event)
        return True

    async def _send_control(self, connection, event: LiveControlEvent) -> None:
        await connection.send(json.dumps({"event": event.value, "userId": self.user_id}))

    async def run(self) -> None:
        """
        Connect, join the user's room and deliver events until stop().

        Raises:
            ConnectionError: more than max_attempts consecutive sessions failed
        """
        failures = 0
        while not self._stopped.is_set():
            error: Optional[BaseException] = None
            try:
                async with websockets.connect(self.url) as connection:
                    self._connection = connection
                    failures = 0
                    await self._send_control(connection, LiveControlEvent.JOIN)
                    async for raw in connection:
                        await self.dispatch(raw)
            except (OSError, WebSocketException) as exc:
                error = exc
            finally:
                self._connection = None

            if self._stopped.is_set():
                break

            failures += 1
            if failures > self.max_attempts:
                raise ConnectionError(
                    f"Live channel unavailable after {self.max_attempts} reconnection attempts"
                ) from error

            delay = self.backoff_delay(failures)
            logger.warning(
                "Live channel disconnected (%s); reconnect %d/%d in %.1fs",
                error or "closed by server",
                failures,
                self.max_attempts,
                delay,
            )
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        """Leave the room and close the connection; run() returns."""
        self._stopped.set()
        connection = self._connection
        if connection is None:
            return
        try:
            await self._send_control(connection, LiveControlEvent.LEAVE)
            await connection.close()
        except (OSError, WebSocketException) as exc:
            logger.debug("Error while closing live connection: %s", exc)
