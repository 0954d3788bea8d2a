"""
Database models for the shortener.

Click events live in the same relational database as users and URLs so the
counter increment and the visit log share one storage layer.
"""

from .user import User
from .url import URL
from .click import ClickEvent, DIRECT_REFERRER

__all__ = ["User", "URL", "ClickEvent", "DIRECT_REFERRER"]
