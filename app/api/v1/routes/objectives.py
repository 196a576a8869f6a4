# app/api/v1/routes/objectives.py
from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_claims
from app.core.auth import TokenClaims
from app.core.database import MAX_ROW_ID, get_async_session
from app.core.exceptions import NotFoundOrForbidden
from app.crud.objective import (
    create_objective_for_user,
    delete_objective,
    get_objective_for_user,
    get_objectives_for_user,
    update_objective,
)
from app.schemas.objective import ObjectiveCreate, ObjectiveRead, ObjectiveUpdate
from app.schemas.transaction import MessageResponse

router = APIRouter(prefix="/objectives", tags=["objectives"])

NOT_FOUND_MESSAGE = "Objective not found"

@router.get("", response_model=List[ObjectiveRead])
async def read_objectives(
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    return await get_objectives_for_user(claims.id, db)

@router.post("", response_model=ObjectiveRead, status_code=status.HTTP_201_CREATED)
async def create_objective(
    objective_in: ObjectiveCreate,
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    return await create_objective_for_user(claims.id, objective_in, db)

@router.put("/{objective_id}", response_model=ObjectiveRead)
async def update_objective_endpoint(
    objective_in: ObjectiveUpdate,
    objective_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    objective = await get_objective_for_user(claims.id, objective_id, db)
    if objective is None:
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    return await update_objective(objective, objective_in, db)

@router.delete("/{objective_id}", response_model=MessageResponse)
async def delete_objective_endpoint(
    objective_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    objective = await get_objective_for_user(claims.id, objective_id, db)
    if objective is None:
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    await delete_objective(objective, db)
    return {"message": "Objective deleted successfully"}
