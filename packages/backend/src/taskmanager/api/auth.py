"""Auth API — registration, login, current user.

- POST /auth/register → create an account (201)
- POST /auth/login → email/password → signed token (also set as cookie
  so a browser can open the dashboard websocket)
- GET /auth/whoami → the authenticated user
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskmanager.api.deps import get_validators
from taskmanager.auth.dependencies import get_current_user
from taskmanager.auth.jwt import TokenService, get_token_service
from taskmanager.config import settings
from taskmanager.db.engine import get_db
from taskmanager.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserRead
from taskmanager.services.user_service import Identity, UserService
from taskmanager.validation import ValidatorTable

router = APIRouter(prefix="/auth")


def _user_svc(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    validators: ValidatorTable = Depends(get_validators),
) -> UserService:
    return UserService(db, tokens, validators)


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, svc: UserService = Depends(_user_svc)):
    """Create a new user account."""
    return await svc.register(body.email, body.password)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: UserService = Depends(_user_svc),
):
    """Login with email and password → signed token."""
    token = await svc.login(body.email, body.password)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.token_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    return TokenResponse(token=token)


@router.get("/whoami", response_model=UserRead)
async def whoami(identity: Identity = Depends(get_current_user)):
    """The authenticated user's account."""
    return identity
