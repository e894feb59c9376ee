from decimal import Decimal
from fractions import Fraction

import pytest

from groupsplit.bill_splitter import (
    BillSplitter,
    per_person_share,
    quantize_money,
    reconcile,
    split_custom,
    split_equal,
    split_itemized,
    split_percentage,
)
from groupsplit.data_models import ReceiptItem, SplitStrategy
from groupsplit.errors import AmountMismatchError, PercentageMismatchError, UnassignedItemsError


def test_equal_split_gives_residual_to_first():
    result = split_equal(Decimal("100.00"), ["a", "b", "c"])

    assert list(result.amounts.values()) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
    assert result.amount_sum == Decimal("100.00")


def test_equal_split_even_total():
    result = split_equal("10.00", ["a", "b", "c", "d"])

    assert set(result.amounts.values()) == {Decimal("2.50")}


def test_equal_split_needs_participants():
    with pytest.raises(ValueError):
        split_equal(Decimal("10"), [])


@pytest.mark.parametrize("price,k", [("10.00", 3), ("0.01", 7), ("499.99", 6), ("2.50", 2)])
def test_item_shares_add_back_to_price(price, k):
    assert per_person_share(Decimal(price), k) * k == Fraction(Decimal(price))


def test_itemized_split():
    items = [ReceiptItem("pizza", "Pizza", "10.00"), ReceiptItem("wine", "Wine", "5.00")]
    assignments = {"pizza": ["a", "b", "c"], "wine": ["b"]}

    result = split_itemized(items, assignments, ["a", "b", "c"])

    assert result.amounts == {"a": Decimal("3.34"), "b": Decimal("8.33"), "c": Decimal("3.33")}
    assert result.amount_sum == Decimal("15.00")
    assert sum(result.exact.values()) == Fraction(15)


def test_itemized_residual_skips_zero_share():
    items = [ReceiptItem("x", "Fries", "1.00")]

    result = split_itemized(items, {"x": ["a", "b", "c"]}, ["z", "a", "b", "c"])

    assert result.amounts["z"] == Decimal("0.00")
    assert result.amounts["a"] == Decimal("0.34")


def test_itemized_blocks_on_unassigned_items():
    items = [ReceiptItem("x", "Fries", "4.00"), ReceiptItem("y", "Soda", "2.00")]

    with pytest.raises(UnassignedItemsError) as excinfo:
        split_itemized(items, {"x": ["a"], "y": []}, ["a", "b"])

    assert excinfo.value.item_ids == ["y"]
    assert excinfo.value.count == 1


def test_itemized_rejects_unknown_assignee():
    items = [ReceiptItem("x", "Fries", "4.00")]

    with pytest.raises(ValueError):
        split_itemized(items, {"x": ["stranger"]}, ["a", "b"])


def test_percentage_split():
    result = split_percentage(Decimal("20.00"), {"a": 50, "b": 50})

    assert result.amounts == {"a": Decimal("10.00"), "b": Decimal("10.00")}
    assert result.percentages == {"a": Decimal("50"), "b": Decimal("50")}


def test_percentage_split_rejects_bad_sum():
    with pytest.raises(PercentageMismatchError) as excinfo:
        split_percentage(Decimal("20.00"), {"a": 60, "b": 30})

    assert excinfo.value.actual == Decimal("90")


def test_percentage_split_within_tolerance_sums_to_total():
    result = split_percentage(Decimal("100.00"), {"a": "33.33", "b": "33.33", "c": "33.34"})

    assert result.amount_sum == Decimal("100.00")


def test_custom_amounts_kept_as_entered():
    result = split_custom(Decimal("20.00"), {"a": "12.50", "b": "7.50"})

    assert result.amounts == {"a": Decimal("12.50"), "b": Decimal("7.50")}


def test_custom_amounts_one_cent_off_accepted():
    result = split_custom(Decimal("20.00"), {"a": "10.00", "b": "9.99"})

    assert result.amounts["b"] == Decimal("9.99")


def test_custom_amounts_mismatch():
    with pytest.raises(AmountMismatchError) as excinfo:
        split_custom(Decimal("20.00"), {"a": 10, "b": 5})

    assert excinfo.value.expected == Decimal("20.00")
    assert excinfo.value.actual == Decimal("15.00")


def test_reconcile_spreads_surplus_cents():
    shares = {"a": Decimal("3.34"), "b": Decimal("3.34"), "c": Decimal("3.34")}

    result = reconcile(shares, Decimal("10.00"), ["a", "b", "c"])

    assert result == {"a": Decimal("3.33"), "b": Decimal("3.33"), "c": Decimal("3.34")}


def test_reconcile_takes_surplus_from_most_rounded_up():
    exact = {"a": Fraction(1, 1000), "b": Fraction(6, 1000), "c": Fraction(6, 1000)}
    shares = {"a": Decimal("0.00"), "b": Decimal("0.01"), "c": Decimal("0.01")}

    result = reconcile(shares, Decimal("0.01"), ["a", "b", "c"], exact)

    assert result == {"a": Decimal("0.00"), "b": Decimal("0.00"), "c": Decimal("0.01")}


def test_itemized_rounding_never_goes_negative():
    roster = [f"p{i}" for i in range(10)]
    items = [ReceiptItem("shared", "Bread", "0.01")]
    assignments = {"shared": roster}
    for n, pair in enumerate([("p1", "p2"), ("p3", "p4"), ("p5", "p6")]):
        items.append(ReceiptItem(f"side{n}", "Dip", "0.01"))
        assignments[f"side{n}"] = list(pair)

    result = split_itemized(items, assignments, roster)

    assert result.amount_sum == Decimal("0.04")
    assert all(amount >= 0 for amount in result.amounts.values())


def test_quantize_money_half_up():
    assert quantize_money(Fraction(1, 200)) == Decimal("0.01")
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")


@pytest.mark.parametrize("strategy,kwargs", [
    (SplitStrategy.EQUAL, {"total": "47.11"}),
    (SplitStrategy.PERCENTAGE, {"total": "47.11", "percentages": {"a": 20, "b": 30, "c": 50}}),
    (SplitStrategy.CUSTOM, {"total": "47.11", "amounts": {"a": "40", "b": "7.11", "c": "0"}}),
])
def test_splitter_sum_invariant(strategy, kwargs):
    result = BillSplitter(["a", "b", "c"], debug=False).split(strategy, **kwargs)

    assert result.amount_sum == Decimal("47.11")
