"""JWT token issuance and verification.

Tokens are stateless: the payload carries the user's email and an
absolute expiry, signed with HS256 and the process-wide secret.
Rotating the secret invalidates every outstanding token.

verify() distinguishes four failure kinds so they can be tested
separately; the HTTP and websocket boundaries collapse them all to 401.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from taskmanager.config import settings

EMAIL_CLAIM = "email"


class TokenError(Exception):
    """Raised when a token can't be verified."""


class MalformedTokenError(TokenError):
    """Not a decodable JWT."""


class InvalidSignatureError(TokenError):
    """Signature doesn't match the secret."""


class ExpiredTokenError(TokenError):
    """The exp claim is in the past."""


class ClaimMissingError(TokenError):
    """exp or email claim is absent, or email isn't a string."""


class TokenService:
    """Issues and verifies identity tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=72),
    ):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, email: str, ttl: Optional[timedelta] = None) -> str:
        """Issue a token for `email` valid for `ttl` (default 72h) from now."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        return self.issue_with_expiry(email, datetime.now(timezone.utc) + ttl)

    def issue_with_expiry(self, email: str, expires_at: datetime) -> str:
        """Issue a token with an explicit absolute expiry."""
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        payload = {
            EMAIL_CLAIM: email,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """Verify a token and return its email claim.

        Raises one of MalformedTokenError, InvalidSignatureError,
        ExpiredTokenError, ClaimMissingError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError("Token has expired")
        except jwt.MissingRequiredClaimError as e:
            raise ClaimMissingError(str(e))
        except jwt.InvalidSignatureError:
            raise InvalidSignatureError("Token signature is invalid")
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Invalid token: {e}")

        email = payload.get(EMAIL_CLAIM)
        if email is None:
            raise ClaimMissingError("email field is not present in token claims")
        if not isinstance(email, str):
            raise ClaimMissingError("email claim must be a string")
        return email


# Process-wide instance built from settings
token_service = TokenService(
    secret=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
    default_ttl=timedelta(hours=settings.token_ttl_hours),
)


def get_token_service() -> TokenService:
    """FastAPI dependency for the process-wide TokenService."""
    return token_service
