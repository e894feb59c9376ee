"""
Settlement Ledger module for groupsplit
Derives pairwise balances from unsettled splits and flips settlement flags

Balances are never stored. Every query reads the current expenses and
nets the unsettled splits between the two participants, so there is
nothing that can drift from the splits themselves.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from groupsplit.config import DEBUG
from groupsplit.data_models import (
    Balance,
    BalanceSummary,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    MemberSummary,
)
from groupsplit.errors import BulkSettlementError, GroupsplitError, SettlementConflict
from groupsplit.storage import ExpenseStore


def owed_between(expenses: Iterable[Expense], creditor: str, debtor: str) -> Decimal:
    """Unsettled amount debtor owes creditor across expenses creditor paid"""
    total = Decimal("0.00")
    if creditor == debtor:
        return total
    for expense in expenses:
        if expense.paid_by != creditor:
            continue
        for split in expense.splits:
            if split.participant_id == debtor and not split.is_settled:
                total += split.amount
    return total


def pair_splits(expenses: Iterable[Expense], a: str, b: str) -> List[ExpenseSplit]:
    """Every split where one of a/b paid and the other owes"""
    splits = []
    for expense in expenses:
        if expense.paid_by == a:
            other = b
        elif expense.paid_by == b:
            other = a
        else:
            continue
        splits.extend(s for s in expense.splits if s.participant_id == other)
    return splits


class SettlementLedger:
    """Balance queries plus settle / unsettle on top of an ExpenseStore"""

    def __init__(self, store: ExpenseStore, debug: bool = DEBUG):
        self.store = store
        self.debug = debug

    # Queries

    def balance(self, group_id: str, a: str, b: str) -> Balance:
        expenses = self.store.list_expenses(group_id)
        net = owed_between(expenses, a, b) - owed_between(expenses, b, a)
        return Balance(a=a, b=b, net=net)

    def counterparties(self, group_id: str, participant_id: str) -> List[str]:
        seen: Dict[str, None] = {}
        for expense in self.store.list_expenses(group_id):
            seen[expense.paid_by] = None
            for split in expense.splits:
                seen[split.participant_id] = None
        seen.pop(participant_id, None)
        return list(seen)

    def member_balances(self, group_id: str, participant_id: str,
                        others: Optional[Sequence[str]] = None) -> List[BalanceSummary]:
        """Non-zero balances between participant_id and everyone else"""
        expenses = self.store.list_expenses(group_id)
        if others is None:
            others = self.counterparties(group_id, participant_id)

        summaries = []
        for other in others:
            if other == participant_id:
                continue
            net = owed_between(expenses, participant_id, other) - owed_between(expenses, other, participant_id)
            if net > 0:
                summaries.append(BalanceSummary(other, net, "owed_to_you"))
            elif net < 0:
                summaries.append(BalanceSummary(other, -net, "you_owe"))
        return summaries

    def member_summary(self, group_id: str, participant_id: str,
                       others: Optional[Sequence[str]] = None) -> MemberSummary:
        summary = MemberSummary(participant_id=participant_id)
        for entry in self.member_balances(group_id, participant_id, others):
            summary.balances.append(entry)
            if entry.direction == "you_owe":
                summary.you_owe += entry.amount
            else:
                summary.you_are_owed += entry.amount
        return summary

    def category_totals(self, group_id: str) -> Dict[ExpenseCategory, Decimal]:
        """Spend per expense category; every category is listed, unused ones at zero"""
        totals = {category: Decimal("0.00") for category in ExpenseCategory}
        for expense in self.store.list_expenses(group_id):
            totals[expense.category] += expense.total
        return totals

    # Single-split transitions

    def _set_settled(self, split_id: str, settled: bool, actor: Optional[str]) -> ExpenseSplit:
        current = self.store.get_split(split_id)
        if current.is_settled == settled:
            return current
        try:
            return self.store.set_split_settled(split_id, settled, expected=not settled, actor=actor)
        except SettlementConflict:
            # Someone else got there first with the same change
            current = self.store.get_split(split_id)
            if current.is_settled == settled:
                return current
            raise

    def settle_split(self, split_id: str, actor: Optional[str] = None) -> ExpenseSplit:
        """Mark one split settled; settling a settled split is a no-op"""
        split = self._set_settled(split_id, True, actor)
        if self.debug:
            print(f"✓ Settled {split_id} ({split.amount})")
        return split

    def unsettle_split(self, split_id: str, actor: Optional[str] = None) -> ExpenseSplit:
        split = self._set_settled(split_id, False, actor)
        if self.debug:
            print(f"↺ Unsettled {split_id} ({split.amount})")
        return split

    # Bulk transitions

    def _bulk_set(self, group_id: str, a: str, b: str, settled: bool, actor: Optional[str]) -> List[ExpenseSplit]:
        updated = []
        with self.store.transaction():
            targets = [s for s in pair_splits(self.store.list_expenses(group_id), a, b)
                       if s.is_settled != settled]
            succeeded = []
            for split in targets:
                try:
                    record = self.store.set_split_settled(split.id, settled, expected=not settled, actor=actor)
                except GroupsplitError as e:
                    if self.debug:
                        print(f"⚠ Rolling back {len(succeeded)} update(s): {e}")
                    raise BulkSettlementError(succeeded, [split.id], e) from e
                succeeded.append(split.id)
                updated.append(record)
        if self.debug:
            verb = "Settled" if settled else "Unsettled"
            print(f"✓ {verb} {len(updated)} split(s) between {a} and {b}")
        return updated

    def settle_up(self, group_id: str, participant_id: str, other_id: str,
                  actor: Optional[str] = None) -> List[ExpenseSplit]:
        """
        Settle every unsettled split between two participants, in either
        direction, as one batch. Nothing is changed if any update fails.
        """
        return self._bulk_set(group_id, participant_id, other_id, True, actor or participant_id)

    def unsettle_up(self, group_id: str, participant_id: str, other_id: str,
                    actor: Optional[str] = None) -> List[ExpenseSplit]:
        return self._bulk_set(group_id, participant_id, other_id, False, actor or participant_id)


class OptimisticSettlement:
    """
    Local view of settlement flags for an interactive session.

    A toggle shows the new flag immediately, then persists it; on failure
    the flag goes back to the last confirmed value and the error is re-raised.
    """

    def __init__(self, ledger: SettlementLedger, splits: Iterable[ExpenseSplit]):
        self.ledger = ledger
        self.confirmed: Dict[str, bool] = {s.id: s.is_settled for s in splits}
        self.local: Dict[str, bool] = dict(self.confirmed)

    def is_settled(self, split_id: str) -> bool:
        return self.local[split_id]

    @property
    def pending(self) -> List[str]:
        return [sid for sid, flag in self.local.items() if flag != self.confirmed.get(sid)]

    def toggle(self, split_id: str, settled: bool, actor: Optional[str] = None) -> ExpenseSplit:
        previous = self.confirmed[split_id]
        self.local[split_id] = settled
        try:
            if settled:
                record = self.ledger.settle_split(split_id, actor)
            else:
                record = self.ledger.unsettle_split(split_id, actor)
        except GroupsplitError:
            self.local[split_id] = previous
            raise
        self.confirmed[split_id] = record.is_settled
        self.local[split_id] = record.is_settled
        return record

    def settle_up(self, group_id: str, participant_id: str, other_id: str,
                  actor: Optional[str] = None) -> List[ExpenseSplit]:
        snapshot = dict(self.local)
        expenses = self.ledger.store.list_expenses(group_id)
        for split in pair_splits(expenses, participant_id, other_id):
            if split.id in self.local:
                self.local[split.id] = True
        try:
            records = self.ledger.settle_up(group_id, participant_id, other_id, actor)
        except GroupsplitError:
            self.local = snapshot
            raise
        for record in records:
            self.confirmed[record.id] = record.is_settled
            self.local[record.id] = record.is_settled
        return records
