"""
Bill Splitter module for groupsplit
Computes each participant's share under the equal / itemized / percentage / custom strategies

Shares are carried as exact fractions and rounded once, at per-person
aggregation. Whenever rounded shares must add up to a target, the
difference is moved one cent at a time by largest remainder: a missing
cent goes to whoever was rounded down the most, a surplus cent comes off
whoever was rounded up the most. Ties go to roster order, only
participants holding a share take part, and no share drops below zero.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from groupsplit.config import AMOUNT_TOLERANCE, DEBUG, PERCENTAGE_TOLERANCE
from groupsplit.constants import DECIMAL_QUANTIZE
from groupsplit.data_models import SplitStrategy
from groupsplit.errors import AmountMismatchError, PercentageMismatchError, UnassignedItemsError

Number = Union[Decimal, Fraction, int, str]


def to_fraction(value: Number) -> Fraction:
    if isinstance(value, Fraction):
        return value
    if isinstance(value, str):
        return Fraction(Decimal(value))
    return Fraction(value)


def quantize_money(value: Number) -> Decimal:
    """Round to the currency minor unit, half up"""
    if isinstance(value, Fraction):
        value = Decimal(value.numerator) / Decimal(value.denominator)
    return Decimal(value).quantize(DECIMAL_QUANTIZE, rounding=ROUND_HALF_UP)


def reconcile(
    shares: Mapping[str, Decimal],
    target: Decimal,
    order: Sequence[str],
    exact: Optional[Mapping[str, Fraction]] = None,
) -> Dict[str, Decimal]:
    """Move the rounding residual one cent at a time until the shares add up to target"""
    result = {pid: shares.get(pid, Decimal("0.00")) for pid in order}
    if not order:
        return result
    cents = int((quantize_money(target) - sum(result.values(), Decimal("0.00"))) / DECIMAL_QUANTIZE)
    if not cents:
        return result

    if exact is None:
        weights = {pid: Fraction(result[pid]) for pid in order}
    else:
        weights = {pid: to_fraction(exact.get(pid, 0)) for pid in order}

    def shortfall(pid: str) -> Fraction:
        return weights[pid] - Fraction(result[pid])

    holders = [pid for pid in order if weights[pid]] or list(order)
    # Missing cents go to the most rounded-down first, surplus cents come off the most rounded-up
    ranked = sorted(holders, key=shortfall, reverse=cents > 0)
    step = DECIMAL_QUANTIZE if cents > 0 else -DECIMAL_QUANTIZE

    remaining = abs(cents)
    while remaining:
        placed = False
        for pid in ranked:
            if not remaining:
                break
            if result[pid] + step < 0:
                continue
            result[pid] += step
            remaining -= 1
            placed = True
        if not placed:
            raise ValueError(f"Cannot reconcile shares to {target} without a negative share")
    return result


@dataclass
class SplitResult:
    """Exact pre-rounding shares plus the rounded, reconciled amounts"""
    strategy: SplitStrategy
    total: Decimal
    exact: Dict[str, Fraction]
    amounts: Dict[str, Decimal]
    percentages: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def amount_sum(self) -> Decimal:
        return sum(self.amounts.values(), Decimal("0.00"))


def _roster(participant_ids: Iterable[str]) -> List[str]:
    roster = list(dict.fromkeys(participant_ids))
    if not roster:
        raise ValueError("At least one participant is required")
    return roster


def split_equal(total: Number, participant_ids: Iterable[str]) -> SplitResult:
    """Divide a flat total evenly; leftover cents go out in roster order"""
    roster = _roster(participant_ids)
    total_exact = to_fraction(total)
    if total_exact < 0:
        raise ValueError("Total cannot be negative")
    share = total_exact / len(roster)
    exact = {pid: share for pid in roster}
    naive = {pid: quantize_money(share) for pid in roster}
    return SplitResult(
        strategy=SplitStrategy.EQUAL,
        total=quantize_money(total_exact),
        exact=exact,
        amounts=reconcile(naive, quantize_money(total_exact), roster, exact),
    )


def per_person_share(price: Number, assignee_count: int) -> Fraction:
    """Exact share of one item; k shares always add back up to the price"""
    if assignee_count < 1:
        raise ValueError("An item needs at least one assignee")
    return to_fraction(price) / assignee_count


def split_itemized(items: Sequence, assignments: Mapping[str, Iterable[str]],
                   participant_ids: Iterable[str]) -> SplitResult:
    """
    Sum each participant's share of every item assigned to them.

    Raises UnassignedItemsError, naming the items, before anything is
    computed if any item has nobody assigned.
    """
    roster = _roster(participant_ids)
    resolved = {item.id: list(dict.fromkeys(assignments.get(item.id) or [])) for item in items}

    unassigned = [item.id for item in items if not resolved[item.id]]
    if unassigned:
        raise UnassignedItemsError(unassigned)

    unknown = {pid for ids in resolved.values() for pid in ids} - set(roster)
    if unknown:
        raise ValueError(f"Assignees not in roster: {', '.join(sorted(unknown))}")

    exact = {pid: Fraction(0) for pid in roster}
    for item in items:
        assignees = resolved[item.id]
        share = per_person_share(item.price, len(assignees))
        for pid in assignees:
            exact[pid] += share

    target = quantize_money(sum((to_fraction(item.price) for item in items), Fraction(0)))
    naive = {pid: quantize_money(value) for pid, value in exact.items()}
    return SplitResult(
        strategy=SplitStrategy.ITEMIZED,
        total=target,
        exact=exact,
        amounts=reconcile(naive, target, roster, exact),
    )


def split_percentage(total: Number, percentages: Mapping[str, Number]) -> SplitResult:
    """amount = total * pct / 100; percentages must add up to 100"""
    roster = _roster(percentages.keys())
    pcts = {pid: Decimal(str(percentages[pid])) for pid in roster}
    if any(p < 0 for p in pcts.values()):
        raise ValueError("Percentages cannot be negative")

    pct_sum = sum(pcts.values(), Decimal("0"))
    if abs(pct_sum - 100) > PERCENTAGE_TOLERANCE:
        raise PercentageMismatchError(pct_sum)

    total_exact = to_fraction(total)
    exact = {pid: total_exact * Fraction(pcts[pid]) / 100 for pid in roster}
    naive = {pid: quantize_money(value) for pid, value in exact.items()}
    target = quantize_money(total_exact)
    return SplitResult(
        strategy=SplitStrategy.PERCENTAGE,
        total=target,
        exact=exact,
        amounts=reconcile(naive, target, roster, exact),
        percentages=pcts,
    )


def split_custom(total: Number, amounts: Mapping[str, Number]) -> SplitResult:
    """Explicit amounts, accepted as entered once they reconcile with the total"""
    roster = _roster(amounts.keys())
    entered = {pid: quantize_money(Decimal(str(amounts[pid]))) for pid in roster}
    if any(a < 0 for a in entered.values()):
        raise ValueError("Amounts cannot be negative")

    target = quantize_money(to_fraction(total))
    entered_sum = sum(entered.values(), Decimal("0.00"))
    if abs(entered_sum - target) > AMOUNT_TOLERANCE:
        raise AmountMismatchError(expected=target, actual=entered_sum)

    return SplitResult(
        strategy=SplitStrategy.CUSTOM,
        total=target,
        exact={pid: Fraction(a) for pid, a in entered.items()},
        amounts=entered,
    )


class BillSplitter:
    """Dispatches a split request to the selected strategy"""

    def __init__(self, participant_ids: Iterable[str], debug: bool = DEBUG):
        self.participant_ids = list(participant_ids)
        self.debug = debug

    def split(
        self,
        strategy: SplitStrategy,
        total: Optional[Number] = None,
        items: Optional[Sequence] = None,
        assignments: Optional[Mapping[str, Iterable[str]]] = None,
        percentages: Optional[Mapping[str, Number]] = None,
        amounts: Optional[Mapping[str, Number]] = None,
    ) -> SplitResult:
        strategy = SplitStrategy(strategy)

        if strategy == SplitStrategy.EQUAL:
            result = split_equal(total, self.participant_ids)
        elif strategy == SplitStrategy.ITEMIZED:
            result = split_itemized(items or [], assignments or {}, self.participant_ids)
        elif strategy == SplitStrategy.PERCENTAGE:
            result = split_percentage(total, percentages or {})
        else:
            result = split_custom(total, amounts or {})

        if self.debug:
            print(f"\n💰 {strategy.value} split of {result.total}:")
            for pid, amount in result.amounts.items():
                print(f"  {pid:15} : {amount:7.2f}")
        return result
