"""
Tests for the owner-scoped transaction queries.

These run against the crud layer directly with an in-memory database.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.db_utils import translate_storage_errors
from app.core.exceptions import NotFoundOrForbidden, StorageError
from app.crud.transaction import (
    create_transaction_for_user,
    delete_transaction_for_user,
    get_balance_for_user,
    get_transaction_for_user,
    get_transaction_stats,
    list_transactions_for_user,
    resolve_period,
    update_transaction_for_user,
)
from app.crud.user import delete_user
from app.models.transaction import TransactionType
from app.schemas.transaction import Page, TransactionFilters, TransactionWrite

TODAY = date(2026, 10, 18)


def tx(type_="expense", amount="10.00", category="Food", day=TODAY, description="Lunch", payment_method=None):
    return TransactionWrite(
        type=type_,
        amount=Decimal(amount),
        description=description,
        category=category,
        payment_method=payment_method,
        date=day,
    )


@pytest.fixture
async def alice(make_user):
    return await make_user("alice@example.com")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob@example.com")


class TestCreateAndRead:

    async def test_create_returns_record_with_id(self, db, alice):
        created = await create_transaction_for_user(alice.id, tx(payment_method="card"), db)
        assert created.id is not None
        assert created.user_id == alice.id
        assert created.type == TransactionType.expense
        assert created.amount == Decimal("10.00")
        assert created.payment_method == "card"
        assert created.date == TODAY

    async def test_other_owner_cannot_read(self, db, alice, bob):
        created = await create_transaction_for_user(alice.id, tx(), db)
        assert await get_transaction_for_user(bob.id, created.id, db) is None
        assert await get_transaction_for_user(bob.id, 999999, db) is None
        assert await get_transaction_for_user(alice.id, created.id, db) is not None


class TestList:

    async def test_only_own_rows_in_order(self, db, alice, bob):
        first = await create_transaction_for_user(alice.id, tx(description="same day first"), db)
        second = await create_transaction_for_user(alice.id, tx(description="same day second"), db)
        older = await create_transaction_for_user(alice.id, tx(day=TODAY - timedelta(days=3)), db)
        newer = await create_transaction_for_user(alice.id, tx(day=TODAY + timedelta(days=1)), db)
        await create_transaction_for_user(bob.id, tx(description="not alice's"), db)

        items, total = await list_transactions_for_user(alice.id, TransactionFilters(), Page(page=1, limit=50), db)

        assert total == 4
        assert [t.id for t in items] == [newer.id, second.id, first.id, older.id]
        assert all(t.user_id == alice.id for t in items)

    async def test_ordering_is_stable(self, db, alice):
        for i in range(5):
            await create_transaction_for_user(alice.id, tx(description=f"entry {i}"), db)
        first_run, _ = await list_transactions_for_user(alice.id, TransactionFilters(), Page(limit=50), db)
        second_run, _ = await list_transactions_for_user(alice.id, TransactionFilters(), Page(limit=50), db)
        assert [t.id for t in first_run] == [t.id for t in second_run]

    async def test_second_page_of_25(self, db, alice):
        for i in range(25):
            await create_transaction_for_user(
                alice.id, tx(description=f"row {i}", day=TODAY - timedelta(days=i)), db
            )

        items, total = await list_transactions_for_user(alice.id, TransactionFilters(), Page(page=2, limit=10), db)

        assert total == 25
        assert [t.description for t in items] == [f"row {i}" for i in range(10, 20)]

    async def test_page_past_the_end_is_empty(self, db, alice):
        await create_transaction_for_user(alice.id, tx(), db)
        items, total = await list_transactions_for_user(alice.id, TransactionFilters(), Page(page=5, limit=10), db)
        assert items == []
        assert total == 1

    async def test_filters_are_combined(self, db, alice):
        await create_transaction_for_user(alice.id, tx(category="Food", day=TODAY - timedelta(days=2)), db)
        await create_transaction_for_user(alice.id, tx(category="Food", day=TODAY - timedelta(days=20)), db)
        await create_transaction_for_user(alice.id, tx(category="Rent", day=TODAY - timedelta(days=2)), db)
        await create_transaction_for_user(alice.id, tx("revenue", category="Food", day=TODAY - timedelta(days=2)), db)

        filters = TransactionFilters(
            type="expense",
            category="Food",
            start_date=TODAY - timedelta(days=7),
            end_date=TODAY,
        )
        items, total = await list_transactions_for_user(alice.id, filters, Page(), db)

        assert total == 1
        assert items[0].category == "Food"
        assert items[0].type == TransactionType.expense
        assert items[0].date == TODAY - timedelta(days=2)

    async def test_date_bounds_are_inclusive(self, db, alice):
        await create_transaction_for_user(alice.id, tx(day=TODAY - timedelta(days=7)), db)
        await create_transaction_for_user(alice.id, tx(day=TODAY), db)
        filters = TransactionFilters(start_date=TODAY - timedelta(days=7), end_date=TODAY)
        _, total = await list_transactions_for_user(alice.id, filters, Page(), db)
        assert total == 2

    async def test_blank_filters_are_unset(self, db, alice):
        await create_transaction_for_user(alice.id, tx(), db)
        filters = TransactionFilters(type="", category=" ", start_date="", end_date=None)
        _, total = await list_transactions_for_user(alice.id, filters, Page(), db)
        assert total == 1


class TestStats:

    async def test_month_window_and_all_time_balance(self, db, alice):
        await create_transaction_for_user(alice.id, tx("revenue", "1000", "Salary", TODAY - timedelta(days=5)), db)
        await create_transaction_for_user(alice.id, tx("expense", "300", "Rent", TODAY - timedelta(days=10)), db)
        await create_transaction_for_user(alice.id, tx("expense", "50", "Food", TODAY - timedelta(days=40)), db)

        stats = await get_transaction_stats(alice.id, "month", db, today=TODAY)

        assert stats.period == "month"
        assert stats.total_revenue == Decimal("1000")
        assert stats.total_expense == Decimal("300")
        assert stats.revenue_count == 1
        assert stats.expense_count == 1
        assert stats.net_income == Decimal("700")
        assert stats.balance == Decimal("650")

    async def test_category_breakdown_sorted_by_total(self, db, alice):
        await create_transaction_for_user(alice.id, tx("expense", "20", "Food", TODAY), db)
        await create_transaction_for_user(alice.id, tx("expense", "35", "Food", TODAY), db)
        await create_transaction_for_user(alice.id, tx("expense", "400", "Rent", TODAY), db)
        await create_transaction_for_user(alice.id, tx("revenue", "15", "Food", TODAY), db)

        stats = await get_transaction_stats(alice.id, "week", db, today=TODAY)

        breakdown = [(c.category, c.type.value, c.total, c.count) for c in stats.category_breakdown]
        assert breakdown == [
            ("Rent", "expense", Decimal("400"), 1),
            ("Food", "expense", Decimal("55"), 2),
            ("Food", "revenue", Decimal("15"), 1),
        ]

    @pytest.mark.parametrize("period, days_in, days_out", [
        ("week", 7, 8),
        ("month", 30, 31),
        ("year", 365, 366),
    ])
    async def test_window_lengths(self, db, alice, period, days_in, days_out):
        await create_transaction_for_user(alice.id, tx("expense", "1", day=TODAY - timedelta(days=days_in)), db)
        await create_transaction_for_user(alice.id, tx("expense", "2", day=TODAY - timedelta(days=days_out)), db)

        stats = await get_transaction_stats(alice.id, period, db, today=TODAY)

        assert stats.total_expense == Decimal("1")
        assert stats.balance == Decimal("-3")

    async def test_unknown_period_means_month(self, db, alice):
        assert resolve_period("fortnight") == "month"
        assert resolve_period(None) == "month"
        stats = await get_transaction_stats(alice.id, "decade", db, today=TODAY)
        assert stats.period == "month"

    async def test_empty_history(self, db, alice):
        stats = await get_transaction_stats(alice.id, "year", db, today=TODAY)
        assert stats.total_revenue == Decimal("0")
        assert stats.total_expense == Decimal("0")
        assert stats.revenue_count == 0
        assert stats.expense_count == 0
        assert stats.balance == Decimal("0")
        assert stats.category_breakdown == []

    async def test_stats_ignore_other_owners(self, db, alice, bob):
        await create_transaction_for_user(bob.id, tx("revenue", "500", day=TODAY), db)
        stats = await get_transaction_stats(alice.id, "month", db, today=TODAY)
        assert stats.total_revenue == Decimal("0")
        assert await get_balance_for_user(bob.id, db) == Decimal("500")


class TestUpdateAndDelete:

    async def test_update_round_trip(self, db, alice):
        created = await create_transaction_for_user(alice.id, tx(payment_method="cash"), db)
        created_id = created.id
        updated_before = created.updated_at

        new_values = tx("revenue", "99.95", "Freelance", TODAY - timedelta(days=1), "Invoice 42", "transfer")
        assert await update_transaction_for_user(alice.id, created_id, new_values, db) is True

        stored = await get_transaction_for_user(alice.id, created_id, db)
        assert stored.type == TransactionType.revenue
        assert stored.amount == Decimal("99.95")
        assert stored.category == "Freelance"
        assert stored.description == "Invoice 42"
        assert stored.payment_method == "transfer"
        assert stored.date == TODAY - timedelta(days=1)
        assert stored.updated_at > updated_before

    async def test_update_of_foreign_row_looks_missing(self, db, alice, bob):
        created = await create_transaction_for_user(alice.id, tx(), db)

        assert await update_transaction_for_user(bob.id, created.id, tx(amount="1"), db) is False
        assert await update_transaction_for_user(bob.id, 424242, tx(amount="1"), db) is False

        stored = await get_transaction_for_user(alice.id, created.id, db)
        assert stored.amount == Decimal("10.00")

    async def test_delete(self, db, alice, bob):
        created = await create_transaction_for_user(alice.id, tx(), db)

        assert await delete_transaction_for_user(bob.id, created.id, db) is False
        assert await get_transaction_for_user(alice.id, created.id, db) is not None

        assert await delete_transaction_for_user(alice.id, created.id, db) is True
        assert await get_transaction_for_user(alice.id, created.id, db) is None

    async def test_delete_missing_id(self, db, alice):
        assert await delete_transaction_for_user(alice.id, 123456, db) is False

    async def test_deleting_user_cascades(self, db, alice):
        await create_transaction_for_user(alice.id, tx(), db)
        assert await delete_user(alice.id, db) is True
        items, total = await list_transactions_for_user(alice.id, TransactionFilters(), Page(), db)
        assert total == 0
        assert items == []

    async def test_create_for_missing_owner(self, db, alice):
        owner_id = alice.id
        with pytest.raises(NotFoundOrForbidden):
            await create_transaction_for_user(owner_id + 1000, tx(), db)
        # the session is usable again
        created = await create_transaction_for_user(owner_id, tx(), db)
        assert created.id is not None


class TestStorageErrors:

    async def test_sqlalchemy_errors_become_storage_error(self, db):
        @translate_storage_errors
        async def broken(db):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        with pytest.raises(StorageError) as exc_info:
            await broken(db)
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, OperationalError)
