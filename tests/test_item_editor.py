import dataclasses
from decimal import Decimal

import pytest

from groupsplit.data_models import Category, FinalizedItem
from groupsplit.errors import ItemValidationError
from groupsplit.item_editor import ItemEditor


@pytest.fixture
def editor(receipt_items):
    return ItemEditor(receipt_items)


def test_duplicates_are_kept(editor):
    editor.add_item("Cola", "2.50", Category.DRINK)

    colas = [i for i in editor.items if i.name == "Cola"]
    assert len(colas) == 3
    assert len({i.id for i in colas}) == 3
    assert editor.subtotal == Decimal("22.50")


def test_manual_items_get_manual_ids(editor):
    item = editor.add_item("  Garlic Bread ", Decimal("6"))

    assert item.id.startswith("manual_")
    assert item.name == "Garlic Bread"
    assert item.price == Decimal("6")


def test_update_item(editor):
    item = editor.update_item("i2", name="Diet Cola", price="3.00", category="drink")

    assert item.name == "Diet Cola"
    assert item.price == Decimal("3.00")
    assert item.category == Category.DRINK


def test_unknown_item_raises_key_error(editor):
    with pytest.raises(KeyError):
        editor.update_item("nope", name="x")


def test_remove_item_drops_its_assignment(editor):
    editor.set_assignees("i1", ["alice", "bob"])

    editor.remove_item("i1")

    assert "i1" not in editor.assignments
    assert [i.id for i in editor.items] == ["i2", "i3"]


def test_validate_names_invalid_items(editor):
    blank = editor.add_item("", "4.00")
    free = editor.add_item("Water", "0")

    with pytest.raises(ItemValidationError) as excinfo:
        editor.validate()

    assert excinfo.value.item_ids == [blank.id, free.id]


def test_finalize_freezes_items(editor):
    finalized = editor.finalize()

    assert all(isinstance(i, FinalizedItem) for i in finalized)
    with pytest.raises(dataclasses.FrozenInstanceError):
        finalized[0].price = Decimal("1")


def test_toggle_assignment(editor):
    assert editor.toggle_assignment("i1", "alice") == ["alice"]
    assert editor.toggle_assignment("i1", "bob") == ["alice", "bob"]
    assert editor.toggle_assignment("i1", "alice") == ["bob"]


def test_set_assignees_deduplicates(editor):
    assert editor.set_assignees("i1", ["alice", "bob", "alice"]) == ["alice", "bob"]


def test_unassigned_items(editor):
    editor.assign_to_everyone("i1", ["alice", "bob"])
    editor.set_assignees("i2", ["alice"])
    editor.clear_assignment("i2")

    assert [i.id for i in editor.unassigned_items()] == ["i2", "i3"]
    assert not editor.all_assigned()


def test_remove_participant_from_assignments(editor):
    editor.set_assignees("i1", ["alice", "guest_1"])
    editor.set_assignees("i2", ["guest_1"])

    editor.remove_participant("guest_1")

    assert editor.assignees("i1") == ["alice"]
    assert editor.assignees("i2") == []
