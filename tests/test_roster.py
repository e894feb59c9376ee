import pytest

from groupsplit.data_models import Participant
from groupsplit.roster import InMemoryRoster


def test_members_listed_before_guests():
    roster = InMemoryRoster({"g1": [Participant("alice", "Alice")]})

    guest = roster.create_guest("g1", "  Carol ")
    roster.add_member("g1", "bob", "Bob")

    assert [p.id for p in roster.list_participants("g1")] == ["alice", "bob", guest.id]
    assert guest.is_guest and guest.name == "Carol"
    assert guest.id.startswith("guest_")


def test_guest_needs_a_name():
    with pytest.raises(ValueError):
        InMemoryRoster().create_guest("g1", "   ")


def test_unknown_group_is_empty():
    assert InMemoryRoster().list_participants("nope") == []
