from decimal import Decimal

import pytest

from groupsplit.data_models import Participant, ParticipantKind, ReceiptItem
from groupsplit.ledger import SettlementLedger
from groupsplit.storage import InMemoryExpenseStore


@pytest.fixture
def alice():
    return Participant("alice", "Alice")


@pytest.fixture
def bob():
    return Participant("bob", "Bob")


@pytest.fixture
def guest():
    return Participant("guest_1", "Carol", ParticipantKind.GUEST)


@pytest.fixture
def people(alice, bob, guest):
    return [alice, bob, guest]


@pytest.fixture
def roster(people):
    return {p.id: p for p in people}


@pytest.fixture
def store():
    return InMemoryExpenseStore()


@pytest.fixture
def ledger(store):
    return SettlementLedger(store)


@pytest.fixture
def receipt_items():
    return [
        ReceiptItem("i1", "Margherita Pizza", Decimal("15.00")),
        ReceiptItem("i2", "Cola", Decimal("2.50")),
        ReceiptItem("i3", "Cola", Decimal("2.50")),
    ]
