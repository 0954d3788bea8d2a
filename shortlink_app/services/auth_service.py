from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from shortlink_app.errors import AuthError, ConflictError, NotFoundError
from shortlink_app.logging_config import get_logger
from shortlink_app.models.user import User
from shortlink_app.schemas.auth import AuthResponse
from shortlink_app.security.passwords import hash_password, verify_password
from shortlink_app.security.tokens import create_access_token, create_refresh_token

logger = get_logger(__name__)


class AuthService:
    """
    Signup and login.

    bcrypt is deliberately slow, so hashing and checking run in the thread
    pool instead of blocking the event loop.
    """

    def __init__(self, db: Session):
        self.db = db

    def _find_by_email(self, email: str):
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    @staticmethod
    def _issue_tokens(user: User) -> AuthResponse:
        return AuthResponse(
            id=user.id,
            email=user.email,
            access_token=create_access_token(user.id, user.email),
            refresh_token=create_refresh_token(user.id, user.email),
        )

    async def signup(self, email: str, password: str) -> AuthResponse:
        """
        Raises:
            ConflictError: the email is already registered
        """
        email = email.strip().lower()
        if self._find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        hashed = await run_in_threadpool(hash_password, password)
        user = User(email=email, password=hashed)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            self.db.rollback()
            raise ConflictError("User with this email already exists")
        self.db.refresh(user)

        logger.info("User %s signed up", user.id)
        return self._issue_tokens(user)

    async def login(self, email: str, password: str) -> AuthResponse:
        """
        Raises:
            AuthError: unknown email or wrong password (same message for both)
        """
        user = self._find_by_email(email.strip().lower())
        if user is None:
            raise AuthError("Invalid email or password")

        if not await run_in_threadpool(verify_password, password, user.password):
            raise AuthError("Invalid email or password")

        return self._issue_tokens(user)

    async def get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User")
        return user
