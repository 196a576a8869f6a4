# app/api/v1/routes/users.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_credential_store, get_current_claims
from app.core.auth import TokenClaims
from app.core.database import get_async_session
from app.core.exceptions import NotFoundOrForbidden, ValidationError
from app.core.security import CredentialStore
from app.crud.user import (
    delete_user,
    get_dashboard_data,
    get_user_by_id,
    record_balance_movement,
    update_user_profile,
)
from app.schemas.transaction import MessageResponse
from app.schemas.user import (
    BalanceMovement,
    BalanceResponse,
    DashboardResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["User Management"])


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_own_profile(
    user_update: ProfileUpdate,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_async_session),
    credentials: CredentialStore = Depends(get_credential_store),
):
    """Update the caller's name, first name, email and/or password."""
    if not user_update.model_dump(exclude_unset=True, exclude_none=True):
        raise ValidationError.single("body", "No fields provided for update")

    user = await get_user_by_id(claims.id, db)
    if user is None:
        raise NotFoundOrForbidden("User not found")

    hashed_password = None
    if user_update.password:
        hashed_password = await credentials.hash_async(user_update.password)

    user = await update_user_profile(user, user_update, hashed_password, db)
    # Tokens already issued keep the old name/email until they expire
    return {"message": "Profile updated successfully", "user": user}


@router.delete("/profile", response_model=MessageResponse)
async def delete_own_profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Delete the caller's account together with its transactions and objectives."""
    if not await delete_user(claims.id, db):
        raise NotFoundOrForbidden("User not found")
    logger.info(f"User {claims.id} deleted their account")
    return {"message": "Account deleted successfully"}


@router.post("/balance", response_model=BalanceResponse)
async def move_balance(
    movement: BalanceMovement,
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    balance = await record_balance_movement(claims.id, movement, db)
    return {"message": f"{movement.type} successful", "balance": balance}


@router.get("/dashboard", response_model=DashboardResponse)
async def read_dashboard(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    user = await get_user_by_id(claims.id, db)
    if user is None:
        raise NotFoundOrForbidden("User not found")
    data = await get_dashboard_data(claims.id, db)
    return {"user": user, **data}
