import json
from decimal import Decimal

from groupsplit.cli_interface import GROUP_ID, GroupsplitCLI, print_items
from groupsplit.data_models import Category, ExtractionResult, ReceiptItem


class FakeProcessor:
    def extract_text(self, image, progress=None, cancel_event=None):
        progress(100)
        return ExtractionResult(text="Nachos 12.00\nIced Tea 3.00")


def _script(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))


def test_manual_entry_split_and_balance(monkeypatch, capsys):
    cli = GroupsplitCLI(processor=FakeProcessor())
    _script(monkeypatch, [
        '3', '1', 'Alice', '1', 'Bob', '3',           # people
        '2', '1', 'Pizza', '20', '4', '', '', 'Tonys',  # manual receipt
        '4', '1', '1',                                # equal split, Alice paid
        '10',
    ])

    cli.run()

    assert cli.ledger.balance(GROUP_ID, "user_1", "user_2").net == Decimal("10.00")
    assert "Saved expense 'Tonys'" in capsys.readouterr().out


PEOPLE_AND_SPLIT = [
    '3', '1', 'Alice', '1', 'Bob', '3',
    '2', '1', 'Pizza', '20', '4', '', '', 'Tonys',
    '4', '1', '1',
]


def test_toggle_one_share_and_undo_settle_up(monkeypatch):
    cli = GroupsplitCLI(processor=FakeProcessor())
    _script(monkeypatch, PEOPLE_AND_SPLIT + ['10'])
    cli.run()

    def owed():
        return cli.ledger.balance(GROUP_ID, "user_1", "user_2").net

    _script(monkeypatch, ['1'])
    cli.toggle_split()
    assert owed() == Decimal("0.00")

    _script(monkeypatch, ['1'])
    cli.toggle_split()
    assert owed() == Decimal("10.00")

    _script(monkeypatch, ['1', '2'])
    cli.settle_up()
    assert owed() == Decimal("0.00")

    _script(monkeypatch, ['2', '1'])
    cli.undo_settle_up()
    assert owed() == Decimal("10.00")


def test_toggle_rejects_bad_selection(monkeypatch, capsys):
    cli = GroupsplitCLI(processor=FakeProcessor())
    _script(monkeypatch, PEOPLE_AND_SPLIT + ['8', '9', '10'])

    cli.run()

    assert "Invalid selection" in capsys.readouterr().out
    assert cli.ledger.balance(GROUP_ID, "user_1", "user_2").net == Decimal("10.00")


def test_export_includes_category_totals(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cli = GroupsplitCLI(processor=FakeProcessor())
    _script(monkeypatch, PEOPLE_AND_SPLIT + ['9', '10'])

    cli.run()

    [exported] = tmp_path.glob("groupsplit_*.json")
    data = json.loads(exported.read_text(encoding="utf-8"))
    assert data["category_totals"]["food"] == "20.00"
    assert data["category_totals"]["transport"] == "0.00"


def test_scanned_receipt_goes_to_review(monkeypatch):
    cli = GroupsplitCLI(processor=FakeProcessor())
    _script(monkeypatch, ['4', '', '', ''])

    cli.process_receipt("receipt.jpg")

    assert [i.name for i in cli.receipt.items] == ["Nachos", "Iced Tea"]
    assert cli.receipt.total == Decimal("15.00")


def test_print_items(capsys):
    print_items([ReceiptItem("a", "Iced Tea", "3.00", Category.DRINK)])

    out = capsys.readouterr().out
    assert "Iced Tea" in out and "$3.00" in out and "[drink]" in out
