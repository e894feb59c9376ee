"""
Expense assembly and commit for groupsplit
"""

from datetime import date
from decimal import Decimal
from typing import List, Mapping, Optional

from groupsplit.bill_splitter import quantize_money
from groupsplit.config import AMOUNT_TOLERANCE, CURRENCY_DEFAULT, DEBUG
from groupsplit.data_models import (
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseSplitRecord,
    Participant,
    SplitStrategy,
)
from groupsplit.errors import AmountMismatchError, PersistenceFailure
from groupsplit.storage import ExpenseStore


def build_split_records(
    amounts: Mapping[str, Decimal],
    roster: Mapping[str, Participant],
    percentages: Optional[Mapping[str, Decimal]] = None,
    skip_zero: bool = True,
) -> List[ExpenseSplitRecord]:
    """Turn per-person amounts into split records, tagging members vs guests"""
    percentages = percentages or {}
    records = []
    for pid, amount in amounts.items():
        if skip_zero and amount == 0:
            continue
        participant = roster.get(pid)
        if participant is None:
            raise ValueError(f"Unknown participant: {pid}")
        records.append(ExpenseSplitRecord(
            participant_id=pid,
            participant_kind="guest" if participant.is_guest else "user",
            amount=quantize_money(amount),
            percentage=percentages.get(pid),
        ))
    return records


def make_draft(
    description: str,
    paid_by: str,
    amounts: Mapping[str, Decimal],
    roster: Mapping[str, Participant],
    split_type: SplitStrategy = SplitStrategy.EQUAL,
    total: Optional[Decimal] = None,
    percentages: Optional[Mapping[str, Decimal]] = None,
    currency: str = CURRENCY_DEFAULT,
    category: ExpenseCategory = ExpenseCategory.OTHER,
    expense_date: Optional[date] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
) -> ExpenseDraft:
    splits = build_split_records(amounts, roster, percentages)
    if total is None:
        total = sum((s.amount for s in splits), Decimal("0.00"))
    return ExpenseDraft(
        description=description,
        total=quantize_money(total),
        paid_by=paid_by,
        splits=splits,
        currency=currency,
        date=expense_date,
        split_type=SplitStrategy(split_type),
        category=category,
        notes=notes,
        created_by=created_by,
    )


def validate_draft(draft: ExpenseDraft):
    """Shape checks plus the sum-of-splits invariant"""
    if not draft.description or not draft.description.strip():
        raise ValueError("Description is required")
    if draft.total <= 0:
        raise ValueError("Amount must be greater than 0")
    if not draft.splits:
        raise ValueError("At least one split is required")
    if draft.split_type == SplitStrategy.PERCENTAGE and any(s.percentage is None for s in draft.splits):
        raise ValueError("Percentage splits need a percentage on every split")

    ids = [s.participant_id for s in draft.splits]
    if len(ids) != len(set(ids)):
        raise ValueError("A participant can only appear once per expense")
    negative = [s.participant_id for s in draft.splits if s.amount < 0]
    if negative:
        raise ValueError(f"Split amounts cannot be negative: {', '.join(negative)}")

    split_sum = sum((s.amount for s in draft.splits), Decimal("0.00"))
    if abs(split_sum - draft.total) > AMOUNT_TOLERANCE:
        raise AmountMismatchError(expected=draft.total, actual=split_sum)


def commit_expense(store: ExpenseStore, group_id: str, draft: ExpenseDraft, debug: bool = DEBUG) -> Expense:
    """
    Validate and persist an expense with all of its splits.

    Storage errors come back as PersistenceFailure holding the draft, so
    the caller can offer a retry without losing anything.
    """
    validate_draft(draft)
    try:
        expense = store.create_expense(group_id, draft)
    except PersistenceFailure as e:
        e.draft = draft
        raise
    except OSError as e:
        raise PersistenceFailure(f"Could not save expense: {e}", draft=draft) from e

    if debug:
        print(f"✅ Saved '{expense.description}' ({expense.total} {expense.currency}) "
              f"with {len(expense.splits)} split(s)")
    return expense
