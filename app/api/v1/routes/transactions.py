# app/api/v1/routes/transactions.py
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_claims
from app.core.auth import TokenClaims
from app.core.database import MAX_ROW_ID, get_async_session
from app.core.exceptions import NotFoundOrForbidden, ValidationError
from app.crud.transaction import (
    create_transaction_for_user,
    delete_transaction_for_user,
    get_transaction_for_user,
    get_transaction_stats,
    list_transactions_for_user,
    update_transaction_for_user,
)
from app.schemas.transaction import (
    MessageResponse,
    Page,
    PaginationRead,
    TransactionEnvelope,
    TransactionFilters,
    TransactionListResponse,
    TransactionStatsResponse,
    TransactionWrite,
)
from app.utils.pagination import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    MAX_PAGE,
    coerce_positive_int,
    page_count,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])

NOT_FOUND_MESSAGE = "Transaction not found"

# Query parameter names as the client sends them
FILTER_ALIASES = {"start_date": "startDate", "end_date": "endDate"}


@router.post("", response_model=TransactionEnvelope, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    tx_in: TransactionWrite,
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    tx = await create_transaction_for_user(claims.id, tx_in, db)
    return {"message": "Transaction created successfully", "transaction": tx}


@router.get("", response_model=TransactionListResponse)
async def read_transactions(
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description=f"Page size, at most {MAX_LIMIT}"),
    type: Optional[str] = Query(None, description="expense or revenue"),
    category: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD, inclusive"),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    """
    List the caller's transactions, newest first.

    Invalid or non-positive ``page``/``limit`` values fall back to 1 and 10;
    ``limit`` is capped at 100 and ``page`` at MAX_PAGE. Unknown ``type``
    values and malformed dates are rejected with 400.
    """
    try:
        filters = TransactionFilters(
            type=type,
            category=category,
            start_date=start_date,
            end_date=end_date,
        )
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e.errors(), aliases=FILTER_ALIASES)

    pagination = Page(
        page=coerce_positive_int(page, DEFAULT_PAGE, maximum=MAX_PAGE),
        limit=coerce_positive_int(limit, DEFAULT_LIMIT, maximum=MAX_LIMIT),
    )

    items, total = await list_transactions_for_user(claims.id, filters, pagination, db)
    return {
        "transactions": items,
        "pagination": PaginationRead(
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            pages=page_count(total, pagination.limit),
        ),
    }


@router.get("/stats", response_model=TransactionStatsResponse)
async def read_transaction_stats(
    period: Optional[str] = Query("month", description="week, month or year"),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    stats = await get_transaction_stats(claims.id, period, db)
    return {
        "period": stats.period,
        "stats": {
            "total_revenue": stats.total_revenue,
            "total_expense": stats.total_expense,
            "revenue_count": stats.revenue_count,
            "expense_count": stats.expense_count,
            "balance": stats.balance,
            "net_income": stats.net_income,
        },
        "categoryBreakdown": [item.model_dump() for item in stats.category_breakdown],
    }


@router.get("/{transaction_id}", response_model=TransactionEnvelope)
async def read_transaction(
    transaction_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    tx = await get_transaction_for_user(claims.id, transaction_id, db)
    if tx is None:
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    return {"transaction": tx}


@router.put("/{transaction_id}", response_model=TransactionEnvelope)
async def update_transaction(
    tx_in: TransactionWrite,
    transaction_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    if not await update_transaction_for_user(claims.id, transaction_id, tx_in, db):
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    tx = await get_transaction_for_user(claims.id, transaction_id, db)
    if tx is None:
        # Deleted between the update and the read
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    return {"message": "Transaction updated successfully", "transaction": tx}


@router.delete("/{transaction_id}", response_model=MessageResponse)
async def delete_transaction(
    transaction_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_async_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    if not await delete_transaction_for_user(claims.id, transaction_id, db):
        raise NotFoundOrForbidden(NOT_FOUND_MESSAGE)
    return {"message": "Transaction deleted successfully"}
