from datetime import date
from decimal import Decimal

import pytest

from groupsplit.data_models import (
    ExpenseCategory,
    ExpenseDraft,
    ExpenseFilters,
    ExpenseSplit,
    ExpenseSplitRecord,
)
from groupsplit.errors import PersistenceFailure, SettlementConflict, SplitNotFoundError


def _draft(paid_by="alice", total="30.00", when=None, category="food"):
    half = Decimal(total) / 2
    return ExpenseDraft(
        description="Dinner",
        total=Decimal(total),
        paid_by=paid_by,
        splits=[
            ExpenseSplitRecord("alice", "user", half),
            ExpenseSplitRecord("guest_1", "guest", half),
        ],
        date=when,
        category=category,
    )


def test_split_needs_exactly_one_participant():
    with pytest.raises(ValueError):
        ExpenseSplit("s", "e", Decimal("1"), user_id="a", guest_id="g")
    with pytest.raises(ValueError):
        ExpenseSplit("s", "e", Decimal("1"))


def test_create_expense_settles_payer_share(store):
    expense = store.create_expense("g1", _draft())

    payer, guest = expense.splits
    assert payer.user_id == "alice" and payer.is_settled and payer.settled_by == "alice"
    assert guest.guest_id == "guest_1" and guest.user_id is None
    assert not guest.is_settled
    assert store.get_expense(expense.id) == expense


def test_missing_records(store):
    with pytest.raises(PersistenceFailure):
        store.get_expense("exp_missing")
    with pytest.raises(SplitNotFoundError):
        store.get_split("split_missing")
    with pytest.raises(KeyError):
        store.get_split("split_missing")


def test_list_expenses_newest_first_and_filters(store):
    old = store.create_expense("g1", _draft(when=date(2024, 1, 1)))
    new = store.create_expense("g1", _draft(when=date(2024, 3, 1), category="transport"))
    store.create_expense("other", _draft())

    assert [e.id for e in store.list_expenses("g1")] == [new.id, old.id]
    assert [e.id for e in store.list_expenses("g1", ExpenseFilters(category="transport"))] == [new.id]

    unsettled = store.list_expenses("g1", ExpenseFilters(settled="unsettled"))
    assert all(len(e.splits) == 1 and not e.splits[0].is_settled for e in unsettled)


def test_delete_expense_removes_splits(store):
    expense = store.create_expense("g1", _draft())

    store.delete_expense(expense.id)

    with pytest.raises(SplitNotFoundError):
        store.get_split(expense.splits[0].id)
    with pytest.raises(PersistenceFailure):
        store.delete_expense(expense.id)


def test_set_split_settled_checks_expected_state(store):
    split = store.create_expense("g1", _draft()).splits[1]

    updated = store.set_split_settled(split.id, True, expected=False, actor="alice")

    assert updated.is_settled and updated.settled_by == "alice"
    assert updated.amount == split.amount
    with pytest.raises(SettlementConflict):
        store.set_split_settled(split.id, True, expected=False)


def test_transaction_rolls_back(store):
    split = store.create_expense("g1", _draft()).splits[1]

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.set_split_settled(split.id, True)
            raise RuntimeError("boom")

    assert not store.get_split(split.id).is_settled


def test_update_expense_metadata(store):
    expense = store.create_expense("g1", _draft())

    updated = store.update_expense(
        expense.id, description="  Team dinner ", category="entertainment",
        date=date(2024, 5, 4), notes="   ",
    )

    assert updated.description == "Team dinner"
    assert updated.category == ExpenseCategory.ENTERTAINMENT
    assert updated.date == date(2024, 5, 4)
    assert updated.notes is None
    assert (updated.total, updated.splits) == (expense.total, expense.splits)
    assert store.get_expense(expense.id) == updated


@pytest.mark.parametrize("changes", [
    {"total": Decimal("99.00")},
    {"paid_by": "guest_1"},
    {"splits": ()},
    {"description": "  "},
    {"category": "travel"},
    {"date": None},
])
def test_update_expense_rejects_amounts_and_bad_values(store, changes):
    expense = store.create_expense("g1", _draft())

    with pytest.raises(ValueError):
        store.update_expense(expense.id, **changes)

    assert store.get_expense(expense.id) == expense


def test_update_missing_expense(store):
    with pytest.raises(PersistenceFailure):
        store.update_expense("exp_missing", notes="hi")
