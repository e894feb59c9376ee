"""
CLI Interface module for groupsplit
Command-line front end: scan or type a receipt, split it, and track who owes whom
"""

import json
from concurrent.futures import wait
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from groupsplit.config import CURRENCY_DEFAULT
from groupsplit.data_models import SplitStrategy
from groupsplit.errors import GroupsplitError
from groupsplit.expense_builder import commit_expense
from groupsplit.ledger import OptimisticSettlement, SettlementLedger
from groupsplit.ocr_processor import ParallelOCRProcessor
from groupsplit.receipt_parser import ReceiptParser
from groupsplit.roster import InMemoryRoster
from groupsplit.storage import InMemoryExpenseStore
from groupsplit.tip_allocator import ChargeMode
from groupsplit.utils import (
    clean_text_for_display,
    create_progress_callback,
    format_currency,
    try_parse_decimal,
    try_parse_int,
    validate_image_path,
    validate_menu_choice,
)
from groupsplit.wizard import ScanSession, ScanStep, SplitWizard, WizardStep

GROUP_ID = "cli"


class GroupsplitCLI:
    """Command-line interface for groupsplit"""

    def __init__(self, processor: Optional[ParallelOCRProcessor] = None, currency: str = CURRENCY_DEFAULT):
        self.processor = processor or ParallelOCRProcessor()
        self.parser = ReceiptParser()
        self.currency = currency
        self.roster = InMemoryRoster()
        self.store = InMemoryExpenseStore()
        self.ledger = SettlementLedger(self.store)
        self.receipt = None

    def money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency)

    @property
    def people(self):
        return self.roster.list_participants(GROUP_ID)

    def display_banner(self):
        print("\n" + "="*60)
        print("🍽️  GROUPSPLIT - Receipt Splitter & Ledger")
        print("="*60)

    def pick_person(self, prompt: str):
        people = self.people
        for i, person in enumerate(people, 1):
            print(f"{i}. {person.name}{' (guest)' if person.is_guest else ''}")
        idx = try_parse_int(input(prompt))
        if idx is None or not 1 <= idx <= len(people):
            print("Invalid selection")
            return None
        return people[idx - 1]

    # Receipt capture

    def process_receipt(self, image_path: str):
        """Scan a receipt image and review the items"""
        print(f"\n📸 Processing receipt: {image_path}")
        session = ScanSession(self.processor, self.parser)
        bar = create_progress_callback("Reading receipt")
        try:
            future = session.start(image_path)
            while not wait([future], timeout=0.5).done:
                bar(session.progress)
            bar(100)
        except KeyboardInterrupt:
            if session.step == ScanStep.PROCESSING:
                session.cancel()
            print("\nScan cancelled.")
        finally:
            session.close()

        if session.step == ScanStep.CAPTURE:
            if session.failure:
                print(f"\n⚠ {session.failure}")
            print("Falling back to manual entry.")
            session.enter_manually()
        elif session.no_items_detected:
            print("\n⚠ No items detected. Try a clearer photo or add items manually.")
        elif session.warnings:
            print(f"\n⚠ Parts of the receipt could not be read ({len(session.warnings)} band(s)). Check the items below.")

        self.review_items(session)

    def manual_entry(self):
        session = ScanSession(self.processor, self.parser)
        session.enter_manually()
        self.review_items(session)

    def display_items(self, editor):
        if not editor.items:
            print("\n(no items)")
            return
        print("\n" + "="*50)
        print("📋 RECEIPT ITEMS")
        print("="*50)
        for i, item in enumerate(editor.items, 1):
            name = clean_text_for_display(item.name, 30)
            print(f"{i:2}. {name:30} {item.price:8.2f}  [{item.category.value}]")
        print("-"*50)
        print(f"{'SUBTOTAL:':40} {self.money(editor.subtotal)}")

    def review_items(self, session: ScanSession):
        editor = session.editor
        while True:
            self.display_items(editor)
            print("\n1. Add item")
            print("2. Edit item")
            print("3. Remove item")
            print("4. Done")
            choice = validate_menu_choice(input("\nChoice: "), ['1', '2', '3', '4']) or ''

            if choice == '1':
                name = input("Item name: ").strip()
                price = try_parse_decimal(input("Price: "))
                if name and price is not None and price > 0:
                    editor.add_item(name, price, self.parser.guess_category(name))
                    print(f"✓ Added {name}")
                else:
                    print("Invalid item")
            elif choice in ('2', '3'):
                idx = try_parse_int(input("Item number: "))
                if idx is None or not 1 <= idx <= len(editor.items):
                    print("Invalid selection")
                    continue
                item = editor.items[idx - 1]
                if choice == '3':
                    editor.remove_item(item.id)
                    print(f"✓ Removed {item.name}")
                    continue
                name = input(f"Name [{item.name}]: ").strip() or None
                price = try_parse_decimal(input(f"Price [{item.price}]: ") or str(item.price))
                editor.update_item(item.id, name=name, price=price)
            elif choice == '4':
                tax = try_parse_decimal(input("Tax amount [0]: ") or "0") or Decimal("0")
                tip = try_parse_decimal(input("Tip amount [0]: ") or "0") or Decimal("0")
                restaurant = input("Restaurant / description: ").strip() or None
                try:
                    self.receipt = session.complete(tax, tip, restaurant, datetime.now().date().isoformat())
                except GroupsplitError as e:
                    print(f"⚠ {e}")
                    continue
                print(f"✓ Receipt ready: {self.money(self.receipt.total)}")
                return

    # People

    def manage_people(self):
        print("\n" + "="*50)
        print("👥 PEOPLE MANAGEMENT")
        print("="*50)

        while True:
            names = ', '.join(p.name for p in self.people) or 'None'
            print(f"\nCurrent people: {names}")
            print("\n1. Add member")
            print("2. Add guest")
            print("3. Done")
            choice = validate_menu_choice(input("\nChoice: "), ['1', '2', '3']) or ''

            if choice == '1':
                name = input("Enter name: ").strip()
                if name:
                    self.roster.add_member(GROUP_ID, f"user_{len(self.people) + 1}", name)
                    print(f"✓ Added {name}")
            elif choice == '2':
                name = input("Guest name: ").strip()
                try:
                    self.roster.create_guest(GROUP_ID, name)
                    print(f"✓ Added guest {name}")
                except ValueError as e:
                    print(f"⚠ {e}")
            elif choice == '3':
                break

    # Splitting

    def split_receipt(self):
        if not self.receipt:
            print("\n⚠ No receipt loaded")
            return
        if len(self.people) < 2:
            print("\n⚠ Add at least two people first")
            return

        wizard = SplitWizard(self.people, receipt=self.receipt, currency=self.currency)
        print("\n1. Split equally")
        print("2. Itemize")
        print("3. By percentage")
        print("4. Custom amounts")
        modes = {'1': SplitStrategy.EQUAL, '2': SplitStrategy.ITEMIZED,
                 '3': SplitStrategy.PERCENTAGE, '4': SplitStrategy.CUSTOM}
        choice = validate_menu_choice(input("\nChoice: "), list(modes))
        if not choice:
            return

        try:
            wizard.choose_mode(modes[choice])
            if wizard.step == WizardStep.ASSIGN:
                self.assign_items(wizard)
                wizard.finish_assignments()
                self.choose_tip_mode(wizard)
                wizard.finish_tip()
            elif wizard.step == WizardStep.ENTER_SHARES:
                self.enter_shares(wizard)
            self.show_summary(wizard)
        except GroupsplitError as e:
            print(f"\n⚠ {e}")
        except ValueError as e:
            print(f"\n⚠ Invalid input: {e}")

    def assign_items(self, wizard: SplitWizard):
        people = wizard.participants
        for item in wizard.editor.items:
            print(f"\n{item.name} - {self.money(item.price)}")
            print("1. Everyone")
            print("2. Specific people")
            choice = validate_menu_choice(input("Choice: "), ['1', '2']) or ''
            if choice == '1':
                wizard.editor.assign_to_everyone(item.id, wizard.participant_ids)
                continue
            for i, person in enumerate(people, 1):
                print(f"{i}. {person.name}")
            picks = [try_parse_int(x) for x in input("Person numbers (comma-separated): ").split(',')]
            chosen = [people[i - 1].id for i in picks if i is not None and 1 <= i <= len(people)]
            wizard.editor.set_assignees(item.id, chosen)

    def choose_tip_mode(self, wizard: SplitWizard):
        if wizard.gratuity == 0:
            return
        print(f"\nTip of {self.money(wizard.gratuity)}:")
        print("1. Proportional to what each person ordered")
        print("2. Equal")
        print("3. Custom")
        choice = validate_menu_choice(input("Choice: "), ['1', '2', '3']) or '1'
        mode = {'1': ChargeMode.PROPORTIONAL, '2': ChargeMode.EQUAL, '3': ChargeMode.CUSTOM}[choice]
        tips = {}
        if mode == ChargeMode.CUSTOM:
            for person in wizard.participants:
                tips[person.id] = try_parse_decimal(input(f"Tip for {person.name}: ") or "0") or Decimal("0")
        wizard.set_charge_modes(tip_mode=mode, custom_tips=tips)

    def enter_shares(self, wizard: SplitWizard):
        values = {}
        label = "Percentage" if wizard.strategy == SplitStrategy.PERCENTAGE else "Amount"
        for person in wizard.participants:
            values[person.id] = try_parse_decimal(input(f"{label} for {person.name}: ") or "0") or Decimal("0")
        if wizard.strategy == SplitStrategy.PERCENTAGE:
            wizard.enter_shares(percentages=values)
        else:
            wizard.enter_shares(amounts=values)

    def show_summary(self, wizard: SplitWizard):
        totals = wizard.person_totals()
        print("\n" + "-"*50)
        print("💰 INDIVIDUAL SHARES")
        print("-"*50)
        for person in wizard.participants:
            print(f"{person.name:15} : {self.money(totals[person.id])}")
        print(f"{'TOTAL':15} : {self.money(wizard.total)}")

        payer = self.pick_person("\nWho paid? ")
        if payer is None:
            return
        draft = wizard.to_expense_draft(paid_by=payer.id, created_by=payer.id)
        while True:
            try:
                expense = commit_expense(self.store, GROUP_ID, draft)
                print(f"✅ Saved expense '{expense.description}'")
                self.receipt = None
                return
            except GroupsplitError as e:
                print(f"⚠ {e}")
                if input("Retry? [y/N]: ").strip().lower() != 'y':
                    return

    # Ledger

    def show_balances(self):
        person = self.pick_person("\nShow balances for: ")
        if person is None:
            return
        names = {p.id: p.name for p in self.people}
        summary = self.ledger.member_summary(GROUP_ID, person.id, [p.id for p in self.people])
        print(f"\nYou owe:         {self.money(summary.you_owe)}")
        print(f"You are owed:    {self.money(summary.you_are_owed)}")
        print(f"Net:             {self.money(summary.net_balance)}")
        if not summary.balances:
            print("\n🎉 All settled up!")
        for entry in summary.balances:
            other = names.get(entry.other_participant_id, entry.other_participant_id)
            if entry.direction == "you_owe":
                print(f"  You owe {other} {self.money(entry.amount)}")
            else:
                print(f"  {other} owes you {self.money(entry.amount)}")

    def _pick_pair(self, verb: str):
        person = self.pick_person(f"\n{verb} for: ")
        other = self.pick_person("With: ") if person else None
        if person is None or other is None or person.id == other.id:
            return None
        return person, other

    def settle_up(self):
        pair = self._pick_pair("Settle up")
        if pair is None:
            return
        try:
            updated = self.ledger.settle_up(GROUP_ID, pair[0].id, pair[1].id)
            print(f"✓ Marked {len(updated)} split(s) as settled")
        except GroupsplitError as e:
            print(f"⚠ {e}. Refresh and try again.")

    def undo_settle_up(self):
        pair = self._pick_pair("Undo settle-up")
        if pair is None:
            return
        try:
            updated = self.ledger.unsettle_up(GROUP_ID, pair[0].id, pair[1].id)
            print(f"↺ Marked {len(updated)} split(s) as unsettled")
        except GroupsplitError as e:
            print(f"⚠ {e}. Refresh and try again.")

    def toggle_split(self):
        """Settle or unsettle a single share of one expense"""
        names = {p.id: p.name for p in self.people}
        shares = [(expense, split) for expense in self.store.list_expenses(GROUP_ID)
                  for split in expense.splits if split.participant_id != expense.paid_by]
        if not shares:
            print("\n(no shares to settle)")
            return
        for i, (expense, split) in enumerate(shares, 1):
            status = "settled" if split.is_settled else "open"
            owner = names.get(split.participant_id, split.participant_id)
            payer = names.get(expense.paid_by, expense.paid_by)
            print(f"{i:2}. {clean_text_for_display(expense.description, 20):20} "
                  f"{owner} owes {payer} {self.money(split.amount)}  [{status}]")
        idx = try_parse_int(input("Share number: "))
        if idx is None or not 1 <= idx <= len(shares):
            print("Invalid selection")
            return

        split = shares[idx - 1][1]
        view = OptimisticSettlement(self.ledger, [split])
        try:
            record = view.toggle(split.id, not split.is_settled)
        except GroupsplitError as e:
            print(f"⚠ {e}. Refresh and try again.")
            return
        print(f"✓ Share marked {'settled' if record.is_settled else 'unsettled'}")

    def export_results(self):
        """Export every expense, member balance and category total to JSON"""
        filename = f"groupsplit_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        expenses = self.store.list_expenses(GROUP_ID)
        data = {
            'export_info': {
                'timestamp': datetime.now().isoformat(),
                'currency': self.currency,
            },
            'people': [asdict(p) for p in self.people],
            'expenses': [asdict(e) for e in expenses],
            'balances': {
                p.id: asdict(self.ledger.member_summary(GROUP_ID, p.id, [q.id for q in self.people]))
                for p in self.people
            },
            'category_totals': {
                category.value: total for category, total in self.ledger.category_totals(GROUP_ID).items()
            },
        }
        try:
            with open(filename, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            print(f"\n✅ Exported {len(expenses)} expense(s) to {filename}")
        except OSError as e:
            print(f"\nExport failed: {e}")

    def run(self):
        """Run the CLI application"""
        self.display_banner()
        actions = {
            '2': self.manual_entry,
            '3': self.manage_people,
            '4': self.split_receipt,
            '5': self.show_balances,
            '6': self.settle_up,
            '7': self.undo_settle_up,
            '8': self.toggle_split,
            '9': self.export_results,
        }

        while True:
            print("\n" + "="*50)
            print("MAIN MENU")
            print("="*50)
            print("1. Scan receipt image")
            print("2. Enter items manually")
            print("3. Manage people")
            print("4. Split receipt")
            print("5. Show balances")
            print("6. Settle up")
            print("7. Undo settle-up")
            print("8. Settle or unsettle one share")
            print("9. Export results")
            print("10. Exit")

            choice = input("\nChoice: ").strip()
            if choice == '1':
                image_path = input("Enter image path: ").strip()
                if validate_image_path(image_path):
                    self.process_receipt(image_path)
                else:
                    print("⚠ Invalid or unsupported image")
            elif choice in actions:
                actions[choice]()
            elif choice == '10':
                print("\n👋 Thanks for using groupsplit!")
                break


def print_items(items: List, currency: str = CURRENCY_DEFAULT):
    for i, item in enumerate(items, 1):
        print(f"  {i:2}. {item.name[:40]:40} {format_currency(item.price, currency):>10}  [{item.category.value}]")


