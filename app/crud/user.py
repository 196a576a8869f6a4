# app/crud/user.py
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import utcnow
from app.core.db_utils import translate_storage_errors
from app.core.exceptions import ConflictError, ValidationError
from app.crud.transaction import create_transaction_for_user, get_balance_for_user
from app.models.transaction import Transaction, TransactionType
from app.models.user import User
from app.schemas.transaction import TransactionWrite
from app.schemas.user import BalanceMovement, ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "User already exists with this email"
DASHBOARD_MONTHS = 12


@translate_storage_errors
async def get_user_by_email(email: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@translate_storage_errors
async def get_user_by_id(user_id: int, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


@translate_storage_errors
async def create_user(user_in: RegisterRequest, hashed_password: str, db: AsyncSession) -> User:
    if await get_user_by_email(user_in.email, db) is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = User(
        name=user_in.name,
        firstname=user_in.firstname,
        email=user_in.email.lower(),
        hashed_password=hashed_password,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration
        await db.rollback()
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    await db.refresh(user)
    logger.info(f"User {user.email} has registered with id {user.id}")
    return user


@translate_storage_errors
async def update_user_profile(
    user: User,
    user_in: ProfileUpdate,
    hashed_password: Optional[str],
    db: AsyncSession,
) -> User:
    update_dict = user_in.model_dump(exclude_unset=True, exclude={"password"})
    update_dict = {field: value for field, value in update_dict.items() if value is not None}

    new_email = update_dict.get("email")
    if new_email and new_email != user.email:
        existing = await get_user_by_email(new_email, db)
        if existing is not None and existing.id != user.id:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    for field, value in update_dict.items():
        setattr(user, field, value)
    if hashed_password is not None:
        user.hashed_password = hashed_password
    user.updated_at = utcnow()

    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    await db.refresh(user)
    logger.info(f"User {user.id} updated fields: {sorted(update_dict) + (['password'] if hashed_password else [])}")
    return user


@translate_storage_errors
async def delete_user(user_id: int, db: AsyncSession) -> bool:
    # Transactions and objectives go with it through ON DELETE CASCADE
    result = await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    return result.rowcount > 0


@translate_storage_errors
async def record_balance_movement(
    user_id: int,
    movement: BalanceMovement,
    db: AsyncSession,
    today: Optional[date] = None,
) -> Decimal:
    """Book a deposit or removal as a transaction and return the new balance."""
    today = today or utcnow().date()

    if movement.type == "removal":
        balance = await get_balance_for_user(user_id, db)
        if balance < movement.amount:
            raise ValidationError.single("amount", "Insufficient balance")
        tx_in = TransactionWrite(
            type=TransactionType.expense,
            amount=movement.amount,
            description="Balance removal",
            category="Withdrawal",
            date=today,
        )
    else:
        tx_in = TransactionWrite(
            type=TransactionType.revenue,
            amount=movement.amount,
            description="Balance deposit",
            category="Deposit",
            date=today,
        )

    await create_transaction_for_user(user_id, tx_in, db)
    return await get_balance_for_user(user_id, db)


def _month_starts(today: date, months: int) -> List[date]:
    """First day of each of the last ``months`` calendar months, oldest first."""
    starts = []
    year, month = today.year, today.month
    for _ in range(months):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


@translate_storage_errors
async def get_dashboard_data(user_id: int, db: AsyncSession, today: Optional[date] = None) -> Dict:
    """
    Chart data for the dashboard, computed on every call:

    - ``categoryData``: all-time expense total per category
    - ``monthlyData``: revenue, expense and net for each of the last 12 months
    """
    today = today or utcnow().date()

    category_rows = (await db.execute(
        select(Transaction.category, func.sum(Transaction.amount).label("total"))
        .where(Transaction.user_id == user_id, Transaction.type == TransactionType.expense)
        .group_by(Transaction.category)
        .order_by(Transaction.category)
    )).all()
    category_data = {row.category: float(row.total) for row in category_rows}

    month_starts = _month_starts(today, DASHBOARD_MONTHS)
    result = await db.execute(
        select(Transaction.date, Transaction.type, Transaction.amount)
        .where(Transaction.user_id == user_id, Transaction.date >= month_starts[0])
    )

    expenses = defaultdict(Decimal)
    revenues = defaultdict(Decimal)
    for tx_date, tx_type, amount in result.all():
        key = (tx_date.year, tx_date.month)
        if tx_type == TransactionType.revenue:
            revenues[key] += amount
        else:
            expenses[key] += amount

    monthly_data = []
    for start in month_starts:
        key = (start.year, start.month)
        monthly_data.append({
            "month": start.strftime("%b %Y"),
            "expenses": float(expenses[key]),
            "revenues": float(revenues[key]),
            "balance": float(revenues[key] - expenses[key]),
        })

    return {
        "categoryData": category_data,
        "monthlyData": monthly_data,
    }
