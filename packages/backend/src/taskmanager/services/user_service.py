"""User service — registration, login, and identity lookup.

The UserDirectory protocol is what the AuthGate needs from the user
store: find an identity by email, or None. SqlUserDirectory is the
database-backed implementation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskmanager.auth.jwt import TokenService
from taskmanager.auth.password import hash_password, verify_password
from taskmanager.db.models import User
from taskmanager.errors import InternalError, Unauthenticated, ValidationError
from taskmanager.validation import ValidatorTable

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    """An authenticated user. Passed explicitly to everything downstream."""

    id: int
    email: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, email=user.email, created_at=user.created_at)


class UserDirectory(Protocol):
    async def find_by_email(self, email: str) -> Optional[Identity]: ...


class UserStore:
    """Queries against the users table within one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def create_user(self, email: str, password_hash: str) -> User:
        user = User(email=email, password_hash=password_hash)
        self.db.add(user)
        await self.db.commit()
        return user


class SqlUserDirectory:
    """UserDirectory backed by the users table. Opens a short session per lookup."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[Identity]:
        try:
            async with self._session_factory() as session:
                user = await UserStore(session).get_by_email(email)
        except SQLAlchemyError as e:
            raise InternalError("user lookup failed") from e
        if user is None:
            return None
        return Identity.from_user(user)


class UserService:
    """Business logic for accounts."""

    def __init__(
        self,
        db: AsyncSession,
        tokens: TokenService,
        validators: ValidatorTable,
    ):
        self.users = UserStore(db)
        self.tokens = tokens
        self.validators = validators

    async def register(self, email: str, password: str) -> Identity:
        """Create an account.

        Raises ValidationError for a malformed email, a weak password,
        or an email that's already taken.
        """
        self.validators.require("email", email, "email")
        self.validators.require("strong_password", password, "password")

        try:
            if await self.users.email_exists(email):
                raise ValidationError("user with such email already exists")
            user = await self.users.create_user(email, hash_password(password))
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            await self.users.db.rollback()
            raise ValidationError("user with such email already exists")
        except SQLAlchemyError as e:
            raise InternalError("failed to create user") from e

        logger.info("auth.registered", user_id=user.id)
        return Identity.from_user(user)

    async def login(self, email: str, password: str) -> str:
        """Check credentials and issue a token.

        Unknown email and wrong password are indistinguishable to the caller.
        """
        try:
            user = await self.users.get_by_email(email)
        except SQLAlchemyError as e:
            raise InternalError("user lookup failed") from e

        if user is None or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", email=email)
            raise Unauthenticated("invalid credentials")

        return self.tokens.issue(user.email)
