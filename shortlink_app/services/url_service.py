import ipaddress
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.errors import ConflictError, NotFoundError, ValidationError
from shortlink_app.logging_config import get_logger
from shortlink_app.models.url import URL
from shortlink_app.services.code_allocator import ExhaustedRetries, ShortCodeAllocator

logger = get_logger(__name__)

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = ("http", "https")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_LABEL_RE = re.compile(r"^[\w-]+$", re.UNICODE)


def ensure_scheme(url: str) -> str:
    """Prepend https:// to a destination that has no explicit scheme."""
    url = url.strip()
    if _SCHEME_RE.match(url):
        return url
    return f"https://{url}"


def _is_valid_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    labels = host.rstrip(".").split(".")
    return len(labels) >= 2 and all(label and _HOST_LABEL_RE.match(label) for label in labels)


def normalize_original_url(original_url: str) -> str:
    """
    Validate a destination and return it with an explicit scheme.

    Accepts absolute http(s) URLs with a host. A bare ``example.com/x`` is
    read as ``https://example.com/x``.

    Raises:
        ValidationError: empty, too long, contains whitespace, unsupported
            scheme, or no usable host
    """
    if original_url is None or not original_url.strip():
        raise ValidationError("Original URL is required")

    candidate = original_url.strip()
    if len(candidate) > MAX_URL_LENGTH:
        raise ValidationError(f"URL must be at most {MAX_URL_LENGTH} characters")
    if any(ch.isspace() for ch in candidate):
        raise ValidationError("Invalid URL format")

    normalized = ensure_scheme(candidate)
    try:
        parts = urlsplit(normalized)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        raise ValidationError("Invalid URL format")

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError("Only http and https URLs can be shortened")
    if not parts.hostname or not _is_valid_host(parts.hostname):
        raise ValidationError("Invalid URL format")
    return normalized


def is_short_code_conflict(exc: IntegrityError) -> bool:
    """True when the integrity failure is the unique constraint on short_code."""
    return "short_code" in str(getattr(exc, "orig", exc)).lower()


def is_missing_owner(exc: IntegrityError) -> bool:
    """True when the integrity failure is the foreign key to users (owner gone)."""
    return "foreign key" in str(getattr(exc, "orig", exc)).lower()


@dataclass(frozen=True)
class RedirectTarget:
    """The minimum needed to redirect and account a visit"""
    url_id: str
    owner_id: str
    original_url: str


class URLService:
    """
    URL registry: create, read, list and delete shortened URLs.
    
    Reads by id and deletes are scoped to the owner. A record owned by
    someone else is reported exactly like a missing one.
    """
    
    def __init__(
        self,
        db: Session,
        allocator: ShortCodeAllocator,
        cache: Optional[CacheStrategy] = None
    ):
        """
        Args:
            db: Database session
            allocator: Produces collision-checked short codes
            cache: Cache strategy for redirect lookups (optional)
        """
        self.db = db
        self.allocator = allocator
        self.cache = cache

    @staticmethod
    def cache_key(short_code: str) -> str:
        return f"url:{short_code}"

    def _code_exists(self, short_code: str) -> bool:
        return self.db.execute(
            select(URL.id).where(URL.short_code == short_code)
        ).first() is not None

    async def create_short_url(self, owner_id: str, original_url: str) -> URL:
        """Create a new short URL for owner_id
        
        Process:
        1. Validate and normalize the destination
        2. Allocate a code (bounded existence-check loop)
        3. Insert; a unique violation on short_code resumes allocation
        4. Cache the code -> destination mapping
        
        Raises:
            ValidationError: destination is not a usable URL
            ConflictError: no free code within the retry budget
            NotFoundError: owner_id no longer exists (token outlived its user)
        """
        destination = normalize_original_url(original_url)

        attempts_spent = 0
        while True:
            allocation = self.allocator.allocate(self._code_exists, start_attempt=attempts_spent)
            if isinstance(allocation, ExhaustedRetries):
                raise ConflictError("Failed to generate unique short code")

            url = URL(
                user_id=owner_id,
                original_url=destination,
                short_code=allocation.code,
                clicks=0,
            )
            self.db.add(url)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if is_missing_owner(exc):
                    raise NotFoundError("User")
                if not is_short_code_conflict(exc):
                    raise
                logger.info(
                    "Short code %s taken by a concurrent insert (attempt %d)",
                    allocation.code,
                    allocation.attempt,
                )
                attempts_spent = allocation.attempt
                continue
            break

        self.db.refresh(url)
        await self._remember(url)
        logger.info("Created short code %s for user %s", url.short_code, owner_id)
        return url

    async def get_url_by_code(self, short_code: str) -> URL:
        url = self.db.execute(
            select(URL).where(URL.short_code == short_code)
        ).scalar_one_or_none()
        if url is None:
            raise NotFoundError("URL")
        return url

    async def get_url_by_id(self, url_id: str, owner_id: str) -> URL:
        url = self.db.execute(
            select(URL).where(URL.id == url_id, URL.user_id == owner_id)
        ).scalar_one_or_none()
        if url is None:
            raise NotFoundError("URL")
        return url

    async def list_urls(self, owner_id: str) -> List[URL]:
        """All URLs of owner_id, newest first"""
        return list(
            self.db.execute(
                select(URL)
                .where(URL.user_id == owner_id)
                .order_by(URL.created_at.desc(), URL.id)
            ).scalars()
        )

    async def delete_url(self, url_id: str, owner_id: str) -> None:
        """
        Delete a URL and, through the cascade, its click events.
        Also invalidates the cached redirect mapping.
        """
        url = await self.get_url_by_id(url_id, owner_id)
        short_code = url.short_code
        result = self.db.execute(
            delete(URL).where(URL.id == url_id, URL.user_id == owner_id)
        )
        if result.rowcount == 0:
            # Removed by a concurrent request since the read above
            self.db.rollback()
            await self.forget(short_code)
            raise NotFoundError("URL")
        self.db.commit()
        await self.forget(short_code)
        logger.info("Deleted short code %s for user %s", short_code, owner_id)

    async def resolve_target(self, short_code: str) -> Optional[RedirectTarget]:
        """
        Look up a code for redirection using the Cache-Aside pattern.
        
        1. Check cache first
        2. On a miss, query the database
        3. Populate the cache for next time
        """
        if self.cache:
            cached = await self.cache.get_json(self.cache_key(short_code))
            if cached:
                try:
                    return RedirectTarget(
                        url_id=cached["id"],
                        owner_id=cached["owner_id"],
                        original_url=cached["original_url"],
                    )
                except KeyError:
                    await self.forget(short_code)

        try:
            url = await self.get_url_by_code(short_code)
        except NotFoundError:
            return None

        await self._remember(url)
        return RedirectTarget(url_id=url.id, owner_id=url.user_id, original_url=url.original_url)

    async def forget(self, short_code: str) -> None:
        if self.cache:
            await self.cache.delete(self.cache_key(short_code))

    async def _remember(self, url: URL) -> None:
        if self.cache:
            await self.cache.set_json(
                self.cache_key(url.short_code),
                {"id": url.id, "owner_id": url.user_id, "original_url": url.original_url},
                ttl=settings.cache_ttl,
            )
