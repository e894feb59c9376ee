"""
Tax & gratuity allocation for groupsplit
Spreads a tax and a tip over participants, then rounds the per-person totals once
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Dict, Mapping, Optional

from groupsplit.bill_splitter import Number, quantize_money, reconcile, to_fraction
from groupsplit.config import AMOUNT_TOLERANCE
from groupsplit.errors import AmountMismatchError


class ChargeMode(str, Enum):
    PROPORTIONAL = "proportional"
    EQUAL = "equal"
    CUSTOM = "custom"


def _spread(charge: Fraction, subtotals: Dict[str, Fraction], mode: ChargeMode) -> Dict[str, Fraction]:
    if mode == ChargeMode.EQUAL:
        share = charge / len(subtotals) if subtotals else Fraction(0)
        return {pid: share for pid in subtotals}
    grand = sum(subtotals.values(), Fraction(0))
    if grand == 0:
        return {pid: Fraction(0) for pid in subtotals}
    return {pid: sub / grand * charge for pid, sub in subtotals.items()}


@dataclass
class ChargeAllocation:
    """Exact per-person subtotal, tax and tip, in roster order"""
    subtotals: Dict[str, Fraction]
    tax: Dict[str, Fraction]
    tips: Dict[str, Fraction]
    total_tax: Decimal
    total_gratuity: Decimal
    tip_mode: ChargeMode = ChargeMode.PROPORTIONAL

    @property
    def allocated_gratuity(self) -> Decimal:
        return quantize_money(sum(self.tips.values(), Fraction(0)))

    @property
    def discrepancy(self) -> Decimal:
        """Gratuity not covered by the per-person tips (negative when over-allocated)"""
        return self.total_gratuity - self.allocated_gratuity

    @property
    def grand_total(self) -> Decimal:
        subtotal = quantize_money(sum(self.subtotals.values(), Fraction(0)))
        return subtotal + self.total_tax + self.total_gratuity

    def exact_totals(self) -> Dict[str, Fraction]:
        return {pid: self.subtotals[pid] + self.tax[pid] + self.tips[pid] for pid in self.subtotals}

    def person_totals(self) -> Dict[str, Decimal]:
        """
        Round each person's total and reconcile to subtotal + tax + gratuity.

        Custom tips that do not add up to the gratuity are reported, never
        absorbed into someone's share.
        """
        if abs(self.discrepancy) > AMOUNT_TOLERANCE:
            raise AmountMismatchError(expected=self.total_gratuity, actual=self.allocated_gratuity)
        exact = self.exact_totals()
        naive = {pid: quantize_money(value) for pid, value in exact.items()}
        return reconcile(naive, self.grand_total, list(exact), exact)


def allocate_charges(
    subtotals: Mapping[str, Number],
    tax: Number = Decimal("0"),
    gratuity: Number = Decimal("0"),
    tax_mode: ChargeMode = ChargeMode.PROPORTIONAL,
    tip_mode: ChargeMode = ChargeMode.PROPORTIONAL,
    custom_tips: Optional[Mapping[str, Number]] = None,
) -> ChargeAllocation:
    """Distribute tax and gratuity over the per-person subtotals"""
    tax_mode = ChargeMode(tax_mode)
    tip_mode = ChargeMode(tip_mode)
    if tax_mode == ChargeMode.CUSTOM:
        raise ValueError("Tax can only be split proportionally or equally")

    exact_subtotals = {pid: to_fraction(value) for pid, value in subtotals.items()}
    total_tax = quantize_money(to_fraction(tax))
    total_gratuity = quantize_money(to_fraction(gratuity))

    tax_shares = _spread(Fraction(total_tax), exact_subtotals, tax_mode)
    if tip_mode == ChargeMode.CUSTOM:
        custom_tips = custom_tips or {}
        tip_shares = {pid: to_fraction(custom_tips.get(pid, 0)) for pid in exact_subtotals}
    else:
        tip_shares = _spread(Fraction(total_gratuity), exact_subtotals, tip_mode)

    return ChargeAllocation(
        subtotals=exact_subtotals,
        tax=tax_shares,
        tips=tip_shares,
        total_tax=total_tax,
        total_gratuity=total_gratuity,
        tip_mode=tip_mode,
    )
