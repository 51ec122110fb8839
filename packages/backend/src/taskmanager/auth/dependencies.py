"""The AuthGate and its FastAPI dependencies.

The gate takes the raw token carrier (Authorization header or auth
cookie), verifies the token, and resolves the email in it against the
user directory. Route handlers receive the resulting Identity as an
explicit parameter via Depends(get_current_user).

Every failure short of a directory outage is Unauthenticated: a bad
token and a token for a deleted account look the same from outside.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskmanager.auth.jwt import TokenError, TokenService, get_token_service
from taskmanager.config import settings
from taskmanager.db.engine import get_session_factory
from taskmanager.errors import (
    InternalError,
    NoCredential,
    TaskManagerError,
    Unauthenticated,
)
from taskmanager.services.user_service import Identity, SqlUserDirectory, UserDirectory

logger = structlog.get_logger()


class AuthGate:
    """Turns a token carrier into a resolved Identity, or raises."""

    def __init__(
        self,
        tokens: TokenService,
        directory: UserDirectory,
        header_scheme: str = "Bearer",
    ):
        self.tokens = tokens
        self.directory = directory
        self.header_scheme = header_scheme

    async def from_header(self, value: Optional[str]) -> Identity:
        """Authenticate an `Authorization: <scheme> <token>` header value."""
        if not value:
            raise NoCredential()

        parts = value.split(" ")
        if (
            len(parts) != 2
            or parts[0].lower() != self.header_scheme.lower()
            or not parts[1]
        ):
            raise Unauthenticated("malformed authorization header")

        return await self.resolve(parts[1])

    async def from_cookie(self, value: Optional[str]) -> Identity:
        """Authenticate a raw token taken from the auth cookie."""
        if not value:
            raise NoCredential()
        return await self.resolve(value)

    async def resolve(self, token: str) -> Identity:
        try:
            email = self.tokens.verify(token)
        except TokenError as e:
            logger.info("auth.token_rejected", reason=type(e).__name__)
            raise Unauthenticated("invalid or expired token") from e

        try:
            identity = await self.directory.find_by_email(email)
        except TaskManagerError:
            raise
        except Exception as e:
            raise InternalError("user lookup failed") from e

        if identity is None:
            logger.info("auth.unknown_identity")
            raise Unauthenticated("invalid or expired token")
        return identity


def get_auth_gate(
    tokens: TokenService = Depends(get_token_service),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AuthGate:
    return AuthGate(
        tokens,
        SqlUserDirectory(session_factory),
        header_scheme=settings.auth_header_scheme,
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    """Resolve the caller from the Authorization header (401 on any failure)."""
    return await gate.from_header(authorization)
