# app/api/v1/routes/auth.py
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_credential_store, get_current_claims, get_token_service
from app.core.auth import IdentityClaims, TokenClaims, TokenService
from app.core.database import get_async_session
from app.core.exceptions import AppError, NotFoundOrForbidden
from app.core.security import CredentialStore
from app.crud.user import create_user, get_user_by_email, get_user_by_id
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    UserSummary,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

INVALID_LOGIN_MESSAGE = "Invalid email or password"


class InvalidLogin(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = INVALID_LOGIN_MESSAGE


def issue_token_for(user: User, tokens: TokenService) -> str:
    return tokens.issue(IdentityClaims(
        id=user.id,
        email=user.email,
        name=user.name,
        firstname=user.firstname,
    ))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_in: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    hashed_password = await credentials.hash_async(user_in.password)
    user = await create_user(user_in, hashed_password, db)
    return AuthResponse(
        message="User created successfully",
        token=issue_token_for(user, tokens),
        user=UserSummary.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    login_in: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Same 401 for an unknown email and a wrong password."""
    user = await get_user_by_email(login_in.email, db)
    if user is None:
        # Keep timing close to a real check
        await credentials.dummy_verify_async()
        logger.info(f"Failed login for {login_in.email}: unknown email")
        raise InvalidLogin()

    if not await credentials.verify_async(login_in.password, user.hashed_password):
        logger.info(f"Failed login for {login_in.email}: wrong password")
        raise InvalidLogin()

    logger.info(f"User {user.id} logged in")
    return AuthResponse(
        message="Login successful",
        token=issue_token_for(user, tokens),
        user=UserSummary.model_validate(user),
    )


@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    user = await get_user_by_id(claims.id, db)
    if user is None:
        raise NotFoundOrForbidden("User not found")
    return {"user": user}


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(claims: TokenClaims = Depends(get_current_claims)):
    """Liveness check for the caller's token."""
    return VerifyResponse(message="Token is valid", user=claims.model_dump())
