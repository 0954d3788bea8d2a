"""
Live click updates.

The server side keeps an in-process registry of WebSocket connections grouped
by owning user. It does not span processes; run a single API worker when live
updates matter.
"""

from .broadcaster import ClickBroadcaster, PublishOutcome, URL_CLICKED_EVENT

__all__ = ["ClickBroadcaster", "PublishOutcome", "URL_CLICKED_EVENT"]
