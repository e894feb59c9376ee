"""
Data models for groupsplit - receipt items, participants, expenses and balances
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple


class Category(str, Enum):
    DRINK = "drink"
    APPETIZER = "appetizer"
    PIZZA = "pizza"
    ENTREE = "entree"
    OTHER = "other"


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    ACCOMMODATION = "accommodation"
    ACTIVITIES = "activities"
    SHOPPING = "shopping"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class ParticipantKind(str, Enum):
    MEMBER = "member"
    GUEST = "guest"


class SplitStrategy(str, Enum):
    EQUAL = "equal"
    ITEMIZED = "itemized"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"


class BalanceDirection(str, Enum):
    A_OWES_B = "A_owes_B"
    B_OWES_A = "B_owes_A"
    EVEN = "even"


@dataclass
class ReceiptItem:
    """A single draft line item, editable until the expense is finalized"""
    id: str
    name: str
    price: Decimal = Decimal("0")
    category: Category = Category.OTHER

    def __post_init__(self):
        if not isinstance(self.price, Decimal):
            self.price = Decimal(str(self.price))
        self.category = Category(self.category)

    def freeze(self) -> "FinalizedItem":
        return FinalizedItem(self.id, self.name, self.price, self.category)


@dataclass(frozen=True)
class FinalizedItem:
    """Immutable item record once the expense has been created"""
    id: str
    name: str
    price: Decimal
    category: Category = Category.OTHER


@dataclass(frozen=True)
class Participant:
    """Someone on the roster. Never created or deleted by the core."""
    id: str
    name: str
    kind: ParticipantKind = ParticipantKind.MEMBER

    @property
    def is_guest(self) -> bool:
        return self.kind == ParticipantKind.GUEST


@dataclass
class ReceiptData:
    """The reviewed receipt handed to the splitter"""
    items: List[ReceiptItem] = field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    gratuity: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    restaurant: Optional[str] = None
    date: Optional[str] = None
    gratuity_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class ExpenseSplitRecord:
    """One participant's share as handed to persistence"""
    participant_id: str
    participant_kind: str  # "user" | "guest"
    amount: Decimal
    percentage: Optional[Decimal] = None


@dataclass(frozen=True)
class ExpenseSplit:
    """
    A persisted share of an expense.

    Exactly one of user_id / guest_id is set. Amounts never change after
    creation; settlement replaces the record with a new flag.
    """
    id: str
    expense_id: str
    amount: Decimal
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    percentage: Optional[Decimal] = None
    is_settled: bool = False
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None

    def __post_init__(self):
        if (self.user_id is None) == (self.guest_id is None):
            raise ValueError("split must reference exactly one of user_id or guest_id")

    @property
    def participant_id(self) -> str:
        return self.user_id if self.user_id is not None else self.guest_id


@dataclass(frozen=True)
class Expense:
    """An expense with all of its splits"""
    id: str
    group_id: str
    description: str
    total: Decimal
    currency: str
    paid_by: str
    date: date
    split_type: SplitStrategy = SplitStrategy.EQUAL
    category: ExpenseCategory = ExpenseCategory.OTHER
    notes: Optional[str] = None
    created_by: Optional[str] = None
    splits: Tuple[ExpenseSplit, ...] = ()


@dataclass(frozen=True)
class Balance:
    """Net of all unsettled obligations between two participants"""
    a: str
    b: str
    net: Decimal  # positive: b owes a

    @property
    def amount(self) -> Decimal:
        return abs(self.net)

    @property
    def direction(self) -> BalanceDirection:
        if self.net > 0:
            return BalanceDirection.B_OWES_A
        if self.net < 0:
            return BalanceDirection.A_OWES_B
        return BalanceDirection.EVEN


@dataclass(frozen=True)
class BalanceSummary:
    other_participant_id: str
    amount: Decimal
    direction: str  # "you_owe" | "owed_to_you"


@dataclass
class MemberSummary:
    """Per-member roll-up of every pairwise balance"""
    participant_id: str
    you_owe: Decimal = Decimal("0.00")
    you_are_owed: Decimal = Decimal("0.00")
    balances: List[BalanceSummary] = field(default_factory=list)

    @property
    def net_balance(self) -> Decimal:
        return self.you_are_owed - self.you_owe


@dataclass
class ExpenseFilters:
    """Filters accepted by ExpenseStore.list_expenses"""
    settled: str = "all"  # "all" | "settled" | "unsettled"
    category: Optional[ExpenseCategory] = None


@dataclass
class ProcessingMetrics:
    """Metrics for parallel OCR processing"""
    workers_used: int = 0
    processing_time: float = 0.0
    regions_processed: int = 0
    items_detected: int = 0


@dataclass
class ExtractionResult:
    """Outcome of a text extraction: either text or an error message"""
    text: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False
    # Bands that failed while others were read
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass
class ExpenseDraft:
    """Everything needed to create an expense and its splits in one go"""
    description: str
    total: Decimal
    paid_by: str
    splits: List[ExpenseSplitRecord] = field(default_factory=list)
    currency: str = "USD"
    date: Optional[date] = None
    split_type: SplitStrategy = SplitStrategy.EQUAL
    category: ExpenseCategory = ExpenseCategory.OTHER
    notes: Optional[str] = None
    created_by: Optional[str] = None

    def __post_init__(self):
        self.split_type = SplitStrategy(self.split_type)
        self.category = ExpenseCategory(self.category)
