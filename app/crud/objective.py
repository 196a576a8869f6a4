# app/crud/objective.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import utcnow
from app.core.db_utils import translate_storage_errors
from app.core.exceptions import NotFoundOrForbidden
from app.crud.transaction import OWNER_MISSING_MESSAGE
from app.models.objective import FinancialObjective
from app.schemas.objective import ObjectiveCreate, ObjectiveUpdate

@translate_storage_errors
async def get_objectives_for_user(user_id: int, db: AsyncSession) -> List[FinancialObjective]:
    result = await db.execute(
        select(FinancialObjective)
        .where(FinancialObjective.user_id == user_id)
        .order_by(FinancialObjective.id)
    )
    return list(result.scalars().all())

@translate_storage_errors
async def get_objective_for_user(user_id: int, objective_id: int, db: AsyncSession) -> Optional[FinancialObjective]:
    result = await db.execute(
        select(FinancialObjective).where(
            FinancialObjective.id == objective_id,
            FinancialObjective.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()

@translate_storage_errors
async def create_objective_for_user(user_id: int, objective_in: ObjectiveCreate, db: AsyncSession) -> FinancialObjective:
    objective = FinancialObjective(**objective_in.model_dump(), user_id=user_id)
    db.add(objective)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise NotFoundOrForbidden(OWNER_MISSING_MESSAGE)
    await db.refresh(objective)
    return objective

@translate_storage_errors
async def update_objective(objective: FinancialObjective, objective_in: ObjectiveUpdate, db: AsyncSession) -> FinancialObjective:
    for field, value in objective_in.model_dump(exclude_unset=True).items():
        # Only the deadline may be cleared
        if value is None and field != "deadline":
            continue
        setattr(objective, field, value)
    objective.updated_at = utcnow()
    db.add(objective)
    await db.commit()
    await db.refresh(objective)
    return objective

@translate_storage_errors
async def delete_objective(objective: FinancialObjective, db: AsyncSession) -> None:
    await db.delete(objective)
    await db.commit()
