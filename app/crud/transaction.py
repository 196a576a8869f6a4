# app/crud/transaction.py
"""
Owner-scoped queries over transactions.

Every statement here carries ``Transaction.user_id == user_id`` in its
predicate, so a row owned by someone else behaves exactly like a row that
does not exist.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import utcnow
from app.core.db_utils import translate_storage_errors
from app.core.exceptions import NotFoundOrForbidden
from app.models.transaction import Transaction, TransactionType
from app.schemas.transaction import (
    CategoryTotal,
    Page,
    TransactionFilters,
    TransactionStats,
    TransactionWrite,
)

logger = logging.getLogger(__name__)

OWNER_MISSING_MESSAGE = "User not found"

# Trailing window length per stats period
PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "year": 365,
}
DEFAULT_PERIOD = "month"

CENT = Decimal("0.01")


def resolve_period(period: Optional[str]) -> str:
    return period if period in PERIOD_DAYS else DEFAULT_PERIOD


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def _filter_conditions(user_id: int, filters: TransactionFilters) -> list:
    conditions = [Transaction.user_id == user_id]
    if filters.type is not None:
        conditions.append(Transaction.type == filters.type)
    if filters.category is not None:
        conditions.append(Transaction.category == filters.category)
    if filters.start_date is not None:
        conditions.append(Transaction.date >= filters.start_date)
    if filters.end_date is not None:
        conditions.append(Transaction.date <= filters.end_date)
    return conditions


def _signed_amount():
    return case(
        (Transaction.type == TransactionType.revenue, Transaction.amount),
        else_=-Transaction.amount,
    )


@translate_storage_errors
async def create_transaction_for_user(user_id: int, tx_in: TransactionWrite, db: AsyncSession) -> Transaction:
    new_tx = Transaction(**tx_in.model_dump(), user_id=user_id)
    db.add(new_tx)
    try:
        await db.commit()
    except IntegrityError:
        # The owner was deleted while their token is still valid
        await db.rollback()
        raise NotFoundOrForbidden(OWNER_MISSING_MESSAGE)
    await db.refresh(new_tx)
    logger.info(f"Created transaction {new_tx.id} for user {user_id}")
    return new_tx


@translate_storage_errors
async def get_transaction_for_user(user_id: int, transaction_id: int, db: AsyncSession) -> Optional[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@translate_storage_errors
async def list_transactions_for_user(
    user_id: int,
    filters: TransactionFilters,
    page: Page,
    db: AsyncSession,
) -> Tuple[List[Transaction], int]:
    """Return one page of the owner's transactions and the unpaginated match count."""
    conditions = _filter_conditions(user_id, filters)

    result = await db.execute(
        select(Transaction)
        .where(*conditions)
        # id breaks ties between rows created in the same instant
        .order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
        .offset(page.offset)
        .limit(page.limit)
    )
    items = list(result.scalars().all())

    total = await db.scalar(select(func.count()).select_from(Transaction).where(*conditions))
    return items, int(total or 0)


@translate_storage_errors
async def get_balance_for_user(user_id: int, db: AsyncSession) -> Decimal:
    """All-time revenue minus expense."""
    balance = await db.scalar(
        select(func.coalesce(func.sum(_signed_amount()), 0)).where(Transaction.user_id == user_id)
    )
    return _money(balance)


@translate_storage_errors
async def get_transaction_stats(
    user_id: int,
    period: Optional[str],
    db: AsyncSession,
    today: Optional[date] = None,
) -> TransactionStats:
    """
    Summarize the owner's activity over a trailing window.

    ``period`` picks the window (week: 7 days, month: 30, year: 365); any
    other value falls back to month. Totals, counts and the category
    breakdown only cover the window, while ``balance`` always spans the
    whole history.
    """
    period = resolve_period(period)
    today = today or utcnow().date()
    window_start = today - timedelta(days=PERIOD_DAYS[period])

    in_window = [Transaction.user_id == user_id, Transaction.date >= window_start]
    is_revenue = Transaction.type == TransactionType.revenue
    is_expense = Transaction.type == TransactionType.expense

    summary = (await db.execute(
        select(
            func.coalesce(func.sum(case((is_revenue, Transaction.amount), else_=0)), 0).label("total_revenue"),
            func.coalesce(func.sum(case((is_expense, Transaction.amount), else_=0)), 0).label("total_expense"),
            func.count(case((is_revenue, 1))).label("revenue_count"),
            func.count(case((is_expense, 1))).label("expense_count"),
        ).where(*in_window)
    )).one()

    total = func.sum(Transaction.amount).label("total")
    breakdown_rows = (await db.execute(
        select(Transaction.category, Transaction.type, total, func.count().label("count"))
        .where(*in_window)
        .group_by(Transaction.category, Transaction.type)
        .order_by(total.desc(), Transaction.category, Transaction.type)
    )).all()

    total_revenue = _money(summary.total_revenue)
    total_expense = _money(summary.total_expense)

    return TransactionStats(
        period=period,
        total_revenue=total_revenue,
        total_expense=total_expense,
        revenue_count=summary.revenue_count,
        expense_count=summary.expense_count,
        net_income=total_revenue - total_expense,
        balance=await get_balance_for_user(user_id, db),
        category_breakdown=[
            CategoryTotal(category=row.category, type=row.type, total=_money(row.total), count=row.count)
            for row in breakdown_rows
        ],
    )


@translate_storage_errors
async def update_transaction_for_user(
    user_id: int,
    transaction_id: int,
    tx_in: TransactionWrite,
    db: AsyncSession,
) -> bool:
    """Replace every field of an owned transaction. False when there is no such row for this owner."""
    result = await db.execute(
        update(Transaction)
        .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
        .values(**tx_in.model_dump(), updated_at=utcnow())
    )
    await db.commit()
    if result.rowcount == 0:
        logger.info(f"Update of transaction {transaction_id} by user {user_id} matched no row")
        return False
    return True


@translate_storage_errors
async def delete_transaction_for_user(user_id: int, transaction_id: int, db: AsyncSession) -> bool:
    result = await db.execute(
        delete(Transaction).where(Transaction.id == transaction_id, Transaction.user_id == user_id)
    )
    await db.commit()
    if result.rowcount == 0:
        logger.info(f"Delete of transaction {transaction_id} by user {user_id} matched no row")
        return False
    return True
