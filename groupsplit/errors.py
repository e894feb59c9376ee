"""
Exception taxonomy for groupsplit.

Validation errors block progression and leave user input untouched.
Persistence errors are retryable. Nothing here is fatal to the caller.
"""

from decimal import Decimal
from typing import Iterable, List, Optional


class GroupsplitError(Exception):
    """Base class for every error raised by groupsplit"""


class ExtractionFailure(GroupsplitError):
    """OCR failed or timed out; the caller falls back to manual entry"""


class ItemValidationError(GroupsplitError):
    def __init__(self, item_ids: Iterable[str]):
        self.item_ids = list(item_ids)
        super().__init__(
            f"{len(self.item_ids)} item(s) need a name and a positive price: {', '.join(self.item_ids)}"
        )


class UnassignedItemsError(GroupsplitError):
    def __init__(self, item_ids: Iterable[str]):
        self.item_ids = list(item_ids)
        super().__init__(
            f"{len(self.item_ids)} item(s) have no assignee: {', '.join(self.item_ids)}"
        )

    @property
    def count(self) -> int:
        return len(self.item_ids)


class PercentageMismatchError(GroupsplitError):
    def __init__(self, actual: Decimal, expected: Decimal = Decimal("100")):
        self.actual = actual
        self.expected = expected
        super().__init__(f"Percentages add up to {actual}, expected {expected}")


class AmountMismatchError(GroupsplitError):
    def __init__(self, expected: Decimal, actual: Decimal):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Amounts add up to {actual}, expected {expected}")


class SettlementConflict(GroupsplitError):
    """A split changed underneath us; refresh and retry"""

    def __init__(self, split_id: str, expected: Optional[bool] = None, actual: Optional[bool] = None):
        self.split_id = split_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Split {split_id} was modified concurrently (expected settled={expected}, found {actual})"
        )


class BulkSettlementError(GroupsplitError):
    """
    A settle-up batch was rolled back.

    succeeded lists the updates that were applied before the failure and
    then undone; failed lists the update that broke the batch.
    """

    def __init__(self, succeeded: List[str], failed: List[str], cause: Exception):
        self.succeeded = succeeded
        self.failed = failed
        self.cause = cause
        super().__init__(
            f"Settle up rolled back: {len(succeeded)} applied then undone, "
            f"{len(failed)} failed ({cause})"
        )


class PersistenceFailure(GroupsplitError):
    """Storage error; the draft is kept so the caller can retry"""

    def __init__(self, message: str, draft=None):
        self.draft = draft
        super().__init__(message)


class SplitNotFoundError(GroupsplitError, KeyError):
    pass


class WizardStateError(GroupsplitError):
    pass
