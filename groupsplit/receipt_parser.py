"""
Receipt Parser module for groupsplit
Turns raw OCR text into draft receipt items for human review
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from groupsplit.config import DEBUG, ITEM_NAME_MAX_LENGTH, ITEM_PRICE_MAX, MIN_LINE_LENGTH
from groupsplit.constants import (
    CATEGORY_KEYWORDS,
    DECIMAL_QUANTIZE,
    NAME_STRIP_PATTERN,
    PRICE_PATTERN,
    REJECT_PATTERNS,
)
from groupsplit.data_models import Category, ReceiptData, ReceiptItem


@dataclass(frozen=True)
class RejectRule:
    """A named pattern that drops a line when it matches"""
    name: str
    pattern: "re.Pattern"

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


def build_reject_rules(patterns=REJECT_PATTERNS) -> List[RejectRule]:
    return [RejectRule(name, re.compile(p, re.IGNORECASE)) for name, p in patterns.items()]


def build_category_rules(keyword_sets=CATEGORY_KEYWORDS) -> List[Tuple[Category, "re.Pattern"]]:
    rules = []
    for category, keywords in keyword_sets:
        alternation = '|'.join(re.escape(k) for k in keywords)
        rules.append((Category(category), re.compile(rf'(?:{alternation})(?:s|es)?\b', re.IGNORECASE)))
    return rules


class ReceiptParser:
    """Parses OCR text to extract priced line items"""

    def __init__(self, debug: bool = DEBUG):
        self.debug = debug
        self.reject_rules = build_reject_rules()
        self.category_rules = build_category_rules()
        self.price_pattern = re.compile(PRICE_PATTERN)
        self.name_strip_pattern = re.compile(NAME_STRIP_PATTERN)

    def _generate_item_id(self) -> str:
        """Generate a synthetic draft item ID"""
        return f"ocr_{uuid.uuid4().hex}"

    def _clean_price(self, price_str: str) -> Optional[Decimal]:
        """Convert the matched price text, or None if it is outside (0, ceiling)"""
        try:
            price = Decimal(price_str.rstrip('.'))
        except InvalidOperation:
            return None
        if 0 < price < ITEM_PRICE_MAX:
            return price.quantize(DECIMAL_QUANTIZE)
        return None

    def clean_item_name(self, name: str) -> str:
        """Strip OCR artifacts from an item name"""
        name = self.name_strip_pattern.sub('', name)
        name = ' '.join(name.split())
        return name[:ITEM_NAME_MAX_LENGTH]

    def guess_category(self, name: str) -> Category:
        """First keyword set that matches wins"""
        for category, pattern in self.category_rules:
            if pattern.search(name):
                return category
        return Category.OTHER

    def rejecting_rule(self, line: str) -> Optional[RejectRule]:
        for rule in self.reject_rules:
            if rule.matches(line):
                return rule
        return None

    def parse_line(self, line: str) -> Optional[ReceiptItem]:
        """Extract a single item from one line, or None"""
        line = line.strip()
        if len(line) < MIN_LINE_LENGTH:
            return None

        rule = self.rejecting_rule(line)
        if rule:
            if self.debug:
                print(f"  Skipping '{line}' ({rule.name})")
            return None

        price_match = self.price_pattern.search(line)
        if not price_match:
            return None

        price = self._clean_price(price_match.group(1))
        if price is None:
            if self.debug:
                print(f"  Skipping '{line}' (price out of range)")
            return None

        name = self.clean_item_name(line[:price_match.start()])
        if len(name) <= 1:
            return None

        item = ReceiptItem(
            id=self._generate_item_id(),
            name=name,
            price=price,
            category=self.guess_category(name),
        )
        if self.debug:
            print(f"    ✓ Found item: {item.name} = {item.price} [{item.category.value}]")
        return item

    def parse(self, ocr_text: str) -> List[ReceiptItem]:
        """
        Parse OCR text into draft items.

        Never raises. An empty list means no items were detected and the
        caller should switch to manual entry. The result is a guess and
        must be reviewed before it is used for money.
        """
        if not ocr_text:
            return []

        if self.debug:
            print("\n🔍 Starting receipt parsing...")
            print(f"OCR text length: {len(ocr_text)} characters")

        items = []
        for line in ocr_text.splitlines():
            item = self.parse_line(line)
            if item is not None:
                items.append(item)

        if self.debug:
            if items:
                print(f"\n📊 Items found: {len(items)}")
            else:
                print("  ⚠ No items detected")
        return items


def build_receipt_data(
    items: List[ReceiptItem],
    tax: Decimal = Decimal("0"),
    gratuity: Decimal = Decimal("0"),
    restaurant: Optional[str] = None,
    date: Optional[str] = None,
) -> ReceiptData:
    """Assemble the receipt totals from reviewed items"""
    subtotal = sum((item.price for item in items), Decimal("0")).quantize(DECIMAL_QUANTIZE)
    tax = Decimal(str(tax)).quantize(DECIMAL_QUANTIZE)
    gratuity = Decimal(str(gratuity)).quantize(DECIMAL_QUANTIZE)
    gratuity_percent = None
    if subtotal > 0 and gratuity > 0:
        gratuity_percent = (gratuity * 100 / subtotal).quantize(Decimal("0.1"))
    return ReceiptData(
        items=list(items),
        subtotal=subtotal,
        tax=tax,
        gratuity=gratuity,
        total=subtotal + tax + gratuity,
        restaurant=restaurant,
        date=date,
        gratuity_percent=gratuity_percent,
    )
