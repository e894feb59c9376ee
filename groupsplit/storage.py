"""
Storage layer for groupsplit.

ExpenseStore is the persistence boundary the ledger talks to. The
in-memory implementation keeps expenses as immutable records behind one
re-entrant lock: reads and writes take the lock, so a bulk update run
inside transaction() is never observed half applied, and a failing
transaction restores the snapshot taken when it started.
"""

import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterator, List, Optional, Protocol

from groupsplit.data_models import Expense, ExpenseCategory, ExpenseDraft, ExpenseFilters, ExpenseSplit
from groupsplit.errors import PersistenceFailure, SettlementConflict, SplitNotFoundError

# Metadata an expense may change after creation; amounts and splits never do
EDITABLE_FIELDS = ("description", "category", "date", "notes")


class ExpenseStore(Protocol):
    def create_expense(self, group_id: str, draft: ExpenseDraft) -> Expense: ...

    def get_expense(self, expense_id: str) -> Expense: ...

    def get_split(self, split_id: str) -> ExpenseSplit: ...

    def list_expenses(self, group_id: str, filters: Optional[ExpenseFilters] = None) -> List[Expense]: ...

    def update_expense(self, expense_id: str, **changes) -> Expense: ...

    def delete_expense(self, expense_id: str) -> None: ...

    def set_split_settled(self, split_id: str, settled: bool, expected: Optional[bool] = None,
                          actor: Optional[str] = None) -> ExpenseSplit: ...

    def transaction(self): ...


def _filter_splits(expense: Expense, filters: ExpenseFilters) -> Optional[Expense]:
    if filters.category and expense.category != filters.category:
        return None
    if filters.settled == "all":
        return expense
    want_settled = filters.settled == "settled"
    splits = tuple(s for s in expense.splits if s.is_settled == want_settled)
    if not splits:
        return None
    return replace(expense, splits=splits)


class InMemoryExpenseStore:
    """Process-local ExpenseStore"""

    def __init__(self):
        self._lock = threading.RLock()
        self._expenses: Dict[str, Expense] = {}
        self._split_index: Dict[str, str] = {}

    def create_expense(self, group_id: str, draft: ExpenseDraft) -> Expense:
        """Create the expense and all of its splits, or nothing"""
        expense_id = f"exp_{uuid.uuid4().hex}"
        splits = []
        for record in draft.splits:
            is_payer = record.participant_id == draft.paid_by
            guest = record.participant_kind == "guest"
            splits.append(ExpenseSplit(
                id=f"split_{uuid.uuid4().hex}",
                expense_id=expense_id,
                amount=record.amount,
                user_id=None if guest else record.participant_id,
                guest_id=record.participant_id if guest else None,
                percentage=record.percentage,
                # The payer's own share is never a debt
                is_settled=is_payer,
                settled_at=datetime.now() if is_payer else None,
                settled_by=draft.paid_by if is_payer else None,
            ))

        expense = Expense(
            id=expense_id,
            group_id=group_id,
            description=draft.description.strip(),
            total=draft.total,
            currency=draft.currency,
            paid_by=draft.paid_by,
            date=draft.date or date.today(),
            split_type=draft.split_type,
            category=draft.category,
            notes=draft.notes.strip() if draft.notes else None,
            created_by=draft.created_by,
            splits=tuple(splits),
        )
        with self._lock:
            self._expenses[expense_id] = expense
            for split in splits:
                self._split_index[split.id] = expense_id
        return expense

    def get_expense(self, expense_id: str) -> Expense:
        with self._lock:
            try:
                return self._expenses[expense_id]
            except KeyError:
                raise PersistenceFailure(f"Expense not found: {expense_id}") from None

    def get_split(self, split_id: str) -> ExpenseSplit:
        with self._lock:
            expense_id = self._split_index.get(split_id)
            if expense_id is None:
                raise SplitNotFoundError(split_id)
            for split in self._expenses[expense_id].splits:
                if split.id == split_id:
                    return split
        raise SplitNotFoundError(split_id)

    def list_expenses(self, group_id: str, filters: Optional[ExpenseFilters] = None) -> List[Expense]:
        filters = filters or ExpenseFilters()
        with self._lock:
            expenses = [e for e in self._expenses.values() if e.group_id == group_id]
        result = []
        for expense in sorted(expenses, key=lambda e: e.date, reverse=True):
            filtered = _filter_splits(expense, filters)
            if filtered is not None:
                result.append(filtered)
        return result

    def update_expense(self, expense_id: str, **changes) -> Expense:
        """Edit description, category, date or notes of an existing expense"""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(sorted(unknown))} after creation")
        if "description" in changes:
            changes["description"] = (changes["description"] or "").strip()
            if not changes["description"]:
                raise ValueError("Description is required")
        if "category" in changes:
            changes["category"] = ExpenseCategory(changes["category"])
        if "date" in changes and changes["date"] is None:
            raise ValueError("Date is required")
        if "notes" in changes:
            changes["notes"] = (changes["notes"] or "").strip() or None

        with self._lock:
            updated = replace(self.get_expense(expense_id), **changes)
            self._expenses[expense_id] = updated
            return updated

    def delete_expense(self, expense_id: str) -> None:
        """Delete an expense and, with it, every one of its splits"""
        with self._lock:
            expense = self._expenses.pop(expense_id, None)
            if expense is None:
                raise PersistenceFailure(f"Expense not found: {expense_id}")
            for split in expense.splits:
                self._split_index.pop(split.id, None)

    def set_split_settled(self, split_id: str, settled: bool, expected: Optional[bool] = None,
                          actor: Optional[str] = None) -> ExpenseSplit:
        """
        Flip one split's settlement flag.

        With expected given, the write only happens if the stored flag
        still equals it; otherwise SettlementConflict is raised.
        """
        with self._lock:
            current = self.get_split(split_id)
            if expected is not None and current.is_settled != expected:
                raise SettlementConflict(split_id, expected=expected, actual=current.is_settled)

            updated = replace(
                current,
                is_settled=settled,
                settled_at=datetime.now() if settled else None,
                settled_by=actor if settled else None,
            )
            expense = self._expenses[current.expense_id]
            splits = tuple(updated if s.id == split_id else s for s in expense.splits)
            self._expenses[expense.id] = replace(expense, splits=splits)
            return updated

    @contextmanager
    def transaction(self) -> Iterator["InMemoryExpenseStore"]:
        """All-or-nothing block; other readers and writers wait until it ends"""
        with self._lock:
            expenses = dict(self._expenses)
            split_index = dict(self._split_index)
            try:
                yield self
            except BaseException:
                self._expenses = expenses
                self._split_index = split_index
                raise
