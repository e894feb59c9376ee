"""
Workflow state machines for groupsplit

ScanSession:  capture -> processing -> review
SplitWizard:  enter_items -> choose_mode -> assign -> tip -> summary
              (equal jumps straight to summary; percentage and custom
              pass through enter_shares instead of assign/tip)

Neither knows anything about rendering. Every transition checks the
current step and raises WizardStateError when called out of order.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from groupsplit.bill_splitter import (
    Number,
    quantize_money,
    split_custom,
    split_equal,
    split_itemized,
    split_percentage,
)
from groupsplit.config import CURRENCY_DEFAULT
from groupsplit.data_models import (
    ExpenseCategory,
    ExpenseDraft,
    ExtractionResult,
    Participant,
    ReceiptData,
    SplitStrategy,
)
from groupsplit.errors import ExtractionFailure, WizardStateError
from groupsplit.expense_builder import make_draft
from groupsplit.item_editor import ItemEditor
from groupsplit.ocr_processor import ParallelOCRProcessor
from groupsplit.receipt_parser import ReceiptParser, build_receipt_data
from groupsplit.tip_allocator import ChargeAllocation, ChargeMode, allocate_charges


class ScanStep(str, Enum):
    CAPTURE = "capture"
    PROCESSING = "processing"
    REVIEW = "review"


class WizardStep(str, Enum):
    ENTER_ITEMS = "enter_items"
    CHOOSE_MODE = "choose_mode"
    ASSIGN = "assign"
    TIP = "tip"
    ENTER_SHARES = "enter_shares"
    SUMMARY = "summary"


def _require(current, *allowed):
    if current not in allowed:
        names = ', '.join(step.value for step in allowed)
        raise WizardStateError(f"Not allowed in step '{current.value}' (expected {names})")


class ScanSession:
    """Capture an image, run OCR off the caller's thread, then review the parsed items"""

    def __init__(self, processor: Optional[ParallelOCRProcessor] = None,
                 parser: Optional[ReceiptParser] = None):
        self.processor = processor or ParallelOCRProcessor()
        self.parser = parser or ReceiptParser()
        self.step = ScanStep.CAPTURE
        self.progress = 0
        self.editor = ItemEditor()
        self.failure: Optional[ExtractionFailure] = None
        self.no_items_detected = False
        self.warnings: List[str] = []
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._cancel_event: Optional[threading.Event] = None

    def _on_progress(self, percent: int):
        self.progress = percent

    def start(self, image) -> Future:
        """Begin extraction; returns a future resolving to the ExtractionResult"""
        with self._lock:
            _require(self.step, ScanStep.CAPTURE)
            self.step = ScanStep.PROCESSING
            self.progress = 0
            self.failure = None
            self.warnings = []
            self._cancel_event = threading.Event()
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1)
            return self._executor.submit(self._run, image, self._cancel_event)

    def _run(self, image, cancel_event: threading.Event) -> ExtractionResult:
        result = self.processor.extract_text(image, progress=self._on_progress, cancel_event=cancel_event)
        with self._lock:
            # A cancelled scan already went back to capture
            if cancel_event.is_set() or self.step != ScanStep.PROCESSING:
                return result
            if not result.ok:
                self.failure = ExtractionFailure(result.error or "Text extraction failed")
                self.step = ScanStep.CAPTURE
                return result
            self.warnings = list(result.warnings)
            items = self.parser.parse(result.text)
            self.editor = ItemEditor(items)
            self.no_items_detected = not items
            self.step = ScanStep.REVIEW
        return result

    def cancel(self):
        """Abandon a running scan; nothing is retried"""
        with self._lock:
            _require(self.step, ScanStep.PROCESSING)
            self._cancel_event.set()
            self.step = ScanStep.CAPTURE
            self.progress = 0

    def enter_manually(self):
        """Skip OCR (or recover from a failed scan) with an empty item list"""
        with self._lock:
            _require(self.step, ScanStep.CAPTURE)
            self.editor = ItemEditor()
            self.no_items_detected = False
            self.step = ScanStep.REVIEW

    def rescan(self):
        with self._lock:
            _require(self.step, ScanStep.REVIEW)
            self.editor = ItemEditor()
            self.no_items_detected = False
            self.step = ScanStep.CAPTURE

    def complete(self, tax: Number = Decimal("0"), gratuity: Number = Decimal("0"),
                 restaurant: Optional[str] = None, date: Optional[str] = None) -> ReceiptData:
        """Hand the reviewed items on; every item must be valid first"""
        _require(self.step, ScanStep.REVIEW)
        self.editor.validate()
        return build_receipt_data(self.editor.items, tax, gratuity, restaurant, date)

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None


class SplitWizard:
    """Items, split mode, assignments, tip and summary for one expense"""

    def __init__(self, participants: Sequence[Participant], receipt: Optional[ReceiptData] = None,
                 flat_total: Optional[Number] = None, currency: str = CURRENCY_DEFAULT):
        if not participants:
            raise ValueError("At least one participant is required")
        self.participants: List[Participant] = list(participants)
        self.currency = currency
        self.editor = ItemEditor(receipt.items if receipt else [])
        self.tax = receipt.tax if receipt else Decimal("0.00")
        self.gratuity = receipt.gratuity if receipt else Decimal("0.00")
        self.restaurant = receipt.restaurant if receipt else None
        self.flat_total = quantize_money(Decimal(str(flat_total))) if flat_total is not None else None

        self.strategy: Optional[SplitStrategy] = None
        has_input = bool(self.editor.items) or self.flat_total is not None
        self.step = WizardStep.CHOOSE_MODE if has_input else WizardStep.ENTER_ITEMS
        self._reset_downstream()

    def _reset_downstream(self):
        self.editor.clear_all_assignments()
        self.tax_mode = ChargeMode.PROPORTIONAL
        self.tip_mode = ChargeMode.PROPORTIONAL
        self.custom_tips: Dict[str, Decimal] = {}
        self.percentages: Dict[str, Decimal] = {}
        self.amounts: Dict[str, Decimal] = {}

    @property
    def roster(self) -> Dict[str, Participant]:
        return {p.id: p for p in self.participants}

    @property
    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants]

    @property
    def subtotal(self) -> Decimal:
        if self.flat_total is not None:
            return self.flat_total
        return quantize_money(self.editor.subtotal)

    @property
    def total(self) -> Decimal:
        if self.flat_total is not None:
            return self.flat_total
        return self.subtotal + self.tax + self.gratuity

    # Roster changes (local guests)

    def add_participant(self, participant: Participant):
        if participant.id not in self.roster:
            self.participants.append(participant)

    def remove_participant(self, participant_id: str):
        if len(self.participants) == 1:
            raise ValueError("At least one participant is required")
        self.participants = [p for p in self.participants if p.id != participant_id]
        self.editor.remove_participant(participant_id)
        for shares in (self.custom_tips, self.percentages, self.amounts):
            shares.pop(participant_id, None)

    # enter_items

    def set_charges(self, tax: Number = Decimal("0"), gratuity: Number = Decimal("0")):
        _require(self.step, WizardStep.ENTER_ITEMS, WizardStep.CHOOSE_MODE)
        tax = quantize_money(Decimal(str(tax)))
        gratuity = quantize_money(Decimal(str(gratuity)))
        if tax < 0 or gratuity < 0:
            raise ValueError("Tax and gratuity cannot be negative")
        self.tax, self.gratuity = tax, gratuity

    def finish_items(self):
        _require(self.step, WizardStep.ENTER_ITEMS)
        if not self.editor.items:
            raise WizardStateError("Add at least one item first")
        self.editor.validate()
        self.step = WizardStep.CHOOSE_MODE

    # choose_mode

    def choose_mode(self, strategy: SplitStrategy):
        """Select the strategy; any earlier assignments or shares are discarded"""
        _require(self.step, WizardStep.CHOOSE_MODE)
        strategy = SplitStrategy(strategy)
        if strategy == SplitStrategy.ITEMIZED and not self.editor.items:
            raise WizardStateError("Itemized split needs receipt items")
        self.editor.validate()
        self._reset_downstream()
        self.strategy = strategy
        if strategy == SplitStrategy.EQUAL:
            self.step = WizardStep.SUMMARY
        elif strategy == SplitStrategy.ITEMIZED:
            self.step = WizardStep.ASSIGN
        else:
            self.step = WizardStep.ENTER_SHARES

    # assign

    def finish_assignments(self):
        _require(self.step, WizardStep.ASSIGN)
        split_itemized(self.editor.items, self.editor.assignments, self.participant_ids)
        self.step = WizardStep.TIP

    # tip

    def set_charge_modes(self, tax_mode: ChargeMode = ChargeMode.PROPORTIONAL,
                         tip_mode: ChargeMode = ChargeMode.PROPORTIONAL,
                         custom_tips: Optional[Mapping[str, Number]] = None):
        _require(self.step, WizardStep.TIP)
        tax_mode, tip_mode = ChargeMode(tax_mode), ChargeMode(tip_mode)
        if tax_mode == ChargeMode.CUSTOM:
            raise ValueError("Tax can only be split proportionally or equally")
        self.tax_mode, self.tip_mode = tax_mode, tip_mode
        self.custom_tips = {pid: Decimal(str(v)) for pid, v in (custom_tips or {}).items()}

    def allocation(self) -> ChargeAllocation:
        result = split_itemized(self.editor.items, self.editor.assignments, self.participant_ids)
        return allocate_charges(result.exact, self.tax, self.gratuity,
                                self.tax_mode, self.tip_mode, self.custom_tips)

    def finish_tip(self):
        """Custom tips that don't cover the gratuity stop here"""
        _require(self.step, WizardStep.TIP)
        self.allocation().person_totals()
        self.step = WizardStep.SUMMARY

    # enter_shares

    def enter_shares(self, percentages: Optional[Mapping[str, Number]] = None,
                     amounts: Optional[Mapping[str, Number]] = None):
        _require(self.step, WizardStep.ENTER_SHARES)
        if self.strategy == SplitStrategy.PERCENTAGE:
            split_percentage(self.total, percentages or {})
            self.percentages = {pid: Decimal(str(v)) for pid, v in percentages.items()}
        else:
            split_custom(self.total, amounts or {})
            self.amounts = {pid: Decimal(str(v)) for pid, v in amounts.items()}
        self.step = WizardStep.SUMMARY

    # navigation

    def back(self):
        """Return to the previous step, keeping what was entered"""
        if self.step == WizardStep.CHOOSE_MODE:
            if self.flat_total is not None:
                raise WizardStateError("Nothing before choose_mode for a flat total")
            self.step = WizardStep.ENTER_ITEMS
        elif self.step in (WizardStep.ASSIGN, WizardStep.ENTER_SHARES):
            self.step = WizardStep.CHOOSE_MODE
        elif self.step == WizardStep.TIP:
            self.step = WizardStep.ASSIGN
        elif self.step == WizardStep.SUMMARY:
            previous = {
                SplitStrategy.EQUAL: WizardStep.CHOOSE_MODE,
                SplitStrategy.ITEMIZED: WizardStep.TIP,
            }
            self.step = previous.get(self.strategy, WizardStep.ENTER_SHARES)
        else:
            raise WizardStateError(f"Cannot go back from '{self.step.value}'")

    # summary

    def person_totals(self) -> Dict[str, Decimal]:
        _require(self.step, WizardStep.SUMMARY)
        if self.strategy == SplitStrategy.EQUAL:
            return split_equal(self.total, self.participant_ids).amounts
        if self.strategy == SplitStrategy.ITEMIZED:
            return self.allocation().person_totals()
        if self.strategy == SplitStrategy.PERCENTAGE:
            return split_percentage(self.total, self.percentages).amounts
        return split_custom(self.total, self.amounts).amounts

    def to_expense_draft(self, paid_by: str, description: Optional[str] = None, **kwargs) -> ExpenseDraft:
        """The commit payload; participants with nothing to pay get no split"""
        _require(self.step, WizardStep.SUMMARY)
        kwargs.setdefault("category", ExpenseCategory.FOOD)
        return make_draft(
            description=description or self.restaurant or "Receipt Split",
            paid_by=paid_by,
            amounts=self.person_totals(),
            roster=self.roster,
            split_type=self.strategy,
            total=self.total,
            percentages=self.percentages if self.strategy == SplitStrategy.PERCENTAGE else None,
            currency=self.currency,
            **kwargs,
        )
