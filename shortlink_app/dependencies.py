"""
FastAPI dependencies for dependency injection.

Process-wide singletons (cache, code strategy, live broadcaster) are built
once through ``lru_cache``; services are built per request around the
request's database session. Tests swap any of them via
``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shortlink_app.cache.factory import CacheBackend, CacheFactory
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.errors import AuthError
from shortlink_app.live.broadcaster import ClickBroadcaster
from shortlink_app.schemas.auth import CurrentUser
from shortlink_app.security.tokens import decode_token
from shortlink_app.services.auth_service import AuthService
from shortlink_app.services.click_service import ClickRecorder
from shortlink_app.services.code_allocator import ShortCodeAllocator
from shortlink_app.services.redirect_service import RedirectResolver
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy, ShortCodeStrategy
from shortlink_app.services.url_service import URLService

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache instance (singleton), backend chosen by settings"""
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_short_code_strategy() -> ShortCodeStrategy:
    return RandomShortCodeStrategy(length=settings.short_code_length)


@lru_cache()
def get_broadcaster() -> ClickBroadcaster:
    """The live connection registry shared by the redirect path and the WebSocket endpoint"""
    return ClickBroadcaster()


def get_allocator(
    strategy: ShortCodeStrategy = Depends(get_short_code_strategy),
) -> ShortCodeAllocator:
    return ShortCodeAllocator(strategy, max_attempts=settings.max_retries)


def get_url_service(
    db: Session = Depends(get_db),
    allocator: ShortCodeAllocator = Depends(get_allocator),
    cache: CacheStrategy = Depends(get_cache),
) -> URLService:
    return URLService(db=db, allocator=allocator, cache=cache)


def get_click_recorder(db: Session = Depends(get_db)) -> ClickRecorder:
    return ClickRecorder(db)


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_redirect_resolver(
    url_service: URLService = Depends(get_url_service),
    click_recorder: ClickRecorder = Depends(get_click_recorder),
    broadcaster: ClickBroadcaster = Depends(get_broadcaster),
) -> RedirectResolver:
    return RedirectResolver(url_service, click_recorder, broadcaster)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Identity from ``Authorization: Bearer <access token>``"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid authorization header")
    claims = decode_token(credentials.credentials)
    return CurrentUser(id=claims.sub, email=claims.email)
