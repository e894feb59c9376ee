from decimal import Decimal

import pytest

from groupsplit.data_models import Category, ReceiptItem
from groupsplit.receipt_parser import ReceiptParser, build_receipt_data


@pytest.fixture
def parser():
    return ReceiptParser(debug=False)


def test_accepts_priced_line(parser):
    item = parser.parse_line("Margherita Pizza        14.50")

    assert item.name == "Margherita Pizza"
    assert item.price == Decimal("14.50")
    assert item.category == Category.PIZZA
    assert item.id.startswith("ocr_")


def test_rejects_card_line(parser):
    line = "VISA ****1234                 0.00"

    assert parser.parse_line(line) is None
    assert parser.rejecting_rule(line).name == "payment"


@pytest.mark.parametrize("line,rule", [
    ("Subtotal               45.00", "summary_header"),
    ("TOTAL                  52.10", "summary_header"),
    ("Gratuity 18%            8.10", "summary_header"),
    ("Cash                   60.00", "payment"),
    ("Server: Dana            1.00", "staff_or_table"),
    ("Table 12                2.00", "staff_or_table"),
    ("04/12/2024 19:32       12.00", "date"),
    ("------------------------", "separator"),
    ("1234567890             10.00", "long_digits"),
    ("#4521                   3.00", "order_number"),
    ("Call our phone line     5.00", "contact"),
    ("visit www.pizza.example 1.00", "contact"),
])
def test_reject_rules(parser, line, rule):
    assert parser.parse_line(line) is None
    assert parser.rejecting_rule(line).name == rule


@pytest.mark.parametrize("line", [
    "Catering Tray          750.00",
    "Free Bread              0.00",
    "Chef's special",
    "A                       5.00",
    "ab",
])
def test_rejects_unusable_lines(parser, line):
    assert parser.parse_line(line) is None


@pytest.mark.parametrize("name,category", [
    ("Iced Tea", Category.DRINK),
    ("2 Beers", Category.DRINK),
    ("Pepperoni Slice", Category.PIZZA),
    ("Chicken Wings", Category.APPETIZER),
    ("Steak Frites", Category.ENTREE),
    ("Grilled Salmon", Category.ENTREE),
    ("Gift Card", Category.OTHER),
])
def test_guess_category(parser, name, category):
    assert parser.guess_category(name) == category


@pytest.mark.parametrize("name,category", [
    ("Cheeseburger", Category.ENTREE),
    ("Hamburger", Category.ENTREE),
    ("Milkshake", Category.DRINK),
    ("Philly Cheesesteak", Category.ENTREE),
])
def test_keywords_match_compound_words(parser, name, category):
    assert parser.guess_category(name) == category


def test_keywords_must_end_a_word(parser):
    # "tea" inside "steak" is not a drink
    assert parser.guess_category("Steak") == Category.ENTREE
    assert parser.guess_category("Teapot Cake") == Category.OTHER


def test_currency_marker_and_trailing_dot(parser):
    burger = parser.parse_line("Burger $12.5")
    coke = parser.parse_line("Coke 2.")

    assert (burger.name, burger.price) == ("Burger", Decimal("12.50"))
    assert coke.price == Decimal("2.00")


def test_clean_item_name(parser):
    assert parser.clean_item_name("  Mac & Cheese!!  ") == "Mac & Cheese"
    assert parser.clean_item_name("Fish_and|Chips") == "FishandChips"
    assert len(parser.clean_item_name("x" * 80)) == 50


def test_parse_keeps_order_and_duplicates(parser):
    text = "\n".join([
        "TONY'S TRATTORIA",
        "Margherita Pizza        14.50",
        "Cola                     2.50",
        "Cola                     2.50",
        "Subtotal                19.50",
        "VISA ****1234           19.50",
    ])

    items = parser.parse(text)

    assert [i.name for i in items] == ["Margherita Pizza", "Cola", "Cola"]
    assert len({i.id for i in items}) == 3


@pytest.mark.parametrize("text", ["", None, "THANK YOU\nCome again"])
def test_parse_without_items_is_empty(parser, text):
    assert parser.parse(text) == []


def test_build_receipt_data():
    items = [ReceiptItem("a", "Pasta", "10.00"), ReceiptItem("b", "Salad", "20.00")]

    receipt = build_receipt_data(items, tax="2.50", gratuity="6")

    assert receipt.subtotal == Decimal("30.00")
    assert receipt.total == Decimal("38.50")
    assert receipt.gratuity_percent == Decimal("20.0")


def test_build_receipt_data_without_gratuity():
    receipt = build_receipt_data([])

    assert receipt.total == Decimal("0.00")
    assert receipt.gratuity_percent is None
