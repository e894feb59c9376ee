"""
Item Editor module for groupsplit
Mutable draft item list plus the item-to-participant assignment relation
"""

import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from groupsplit.data_models import Category, FinalizedItem, ReceiptItem
from groupsplit.errors import ItemValidationError


class ItemEditor:
    """User-correctable collection of draft receipt items"""

    def __init__(self, items: Optional[Iterable[ReceiptItem]] = None):
        self.items: List[ReceiptItem] = list(items or [])
        self.assignments: Dict[str, List[str]] = {}

    def _find(self, item_id: str) -> ReceiptItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def add_item(self, name: str = "", price=Decimal("0"), category=Category.OTHER) -> ReceiptItem:
        """Add a manual item. Duplicates are kept as separate rows."""
        item = ReceiptItem(
            id=f"manual_{uuid.uuid4().hex}",
            name=name.strip(),
            price=price,
            category=category,
        )
        self.items.append(item)
        return item

    def update_item(self, item_id: str, name: Optional[str] = None, price=None, category=None) -> ReceiptItem:
        item = self._find(item_id)
        if name is not None:
            item.name = name.strip()
        if price is not None:
            item.price = Decimal(str(price))
        if category is not None:
            item.category = Category(category)
        return item

    def remove_item(self, item_id: str) -> ReceiptItem:
        """Discard a draft item and any assignment referencing it"""
        item = self._find(item_id)
        self.items.remove(item)
        self.assignments.pop(item_id, None)
        return item

    @property
    def subtotal(self) -> Decimal:
        return sum((item.price for item in self.items), Decimal("0"))

    def invalid_items(self) -> List[ReceiptItem]:
        return [item for item in self.items if not item.name.strip() or item.price <= 0]

    def validate(self):
        """Every item needs a non-empty name and a strictly positive price"""
        invalid = self.invalid_items()
        if invalid:
            raise ItemValidationError(item.id for item in invalid)

    def finalize(self) -> List[FinalizedItem]:
        self.validate()
        return [item.freeze() for item in self.items]

    # Assignment relation

    def assignees(self, item_id: str) -> List[str]:
        return list(self.assignments.get(item_id, []))

    def toggle_assignment(self, item_id: str, participant_id: str) -> List[str]:
        self._find(item_id)
        current = self.assignments.setdefault(item_id, [])
        if participant_id in current:
            current.remove(participant_id)
        else:
            current.append(participant_id)
        return list(current)

    def set_assignees(self, item_id: str, participant_ids: Iterable[str]) -> List[str]:
        self._find(item_id)
        unique = list(dict.fromkeys(participant_ids))
        self.assignments[item_id] = unique
        return list(unique)

    def assign_to_everyone(self, item_id: str, participant_ids: Iterable[str]) -> List[str]:
        return self.set_assignees(item_id, participant_ids)

    def clear_assignment(self, item_id: str):
        self._find(item_id)
        self.assignments[item_id] = []

    def clear_all_assignments(self):
        self.assignments = {}

    def remove_participant(self, participant_id: str):
        """Drop a participant (e.g. a local guest) from every assignment"""
        for item_id, current in self.assignments.items():
            self.assignments[item_id] = [p for p in current if p != participant_id]

    def unassigned_items(self) -> List[ReceiptItem]:
        return [item for item in self.items if not self.assignments.get(item.id)]

    def all_assigned(self) -> bool:
        return not self.unassigned_items()
