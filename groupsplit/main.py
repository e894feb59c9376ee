"""
groupsplit - receipt splitting and group settlement ledger

groupsplit                          # Interactive CLI mode
groupsplit receipt.jpg              # Scan an image, then start the CLI
groupsplit receipt.jpg --quick      # Quick mode - just show the parsed items
groupsplit --help                   # Show help
"""

import argparse
import os
import sys

from groupsplit.cli_interface import GroupsplitCLI, print_items
from groupsplit.config import CURRENCY_DEFAULT, DEFAULT_MAX_WORKERS, WORKERS_MAX, WORKERS_MIN
from groupsplit.ocr_processor import ParallelOCRProcessor
from groupsplit.receipt_parser import ReceiptParser, build_receipt_data
from groupsplit.utils import create_progress_callback, format_currency


def quick_process(image_path: str, workers: int = DEFAULT_MAX_WORKERS, currency: str = CURRENCY_DEFAULT) -> int:
    """Quick processing mode - just show results"""
    print(f"🚀 Quick processing: {image_path}")

    processor = ParallelOCRProcessor(num_workers=workers)
    result = processor.extract_text(image_path, progress=create_progress_callback("Reading receipt"))
    if not result.ok:
        print(f"\n❌ Could not read receipt: {result.error}")
        print("Enter the items manually in interactive mode instead.")
        return 1

    items = ReceiptParser().parse(result.text)
    if not items:
        print("\n⚠ No items found in receipt")
        print("Try:")
        print("  • Better image quality/lighting")
        print("  • Manual item entry in interactive mode")
        return 0

    receipt = build_receipt_data(items)
    print(f"\n📋 Found {len(items)} items (please review before splitting):")
    print_items(items, currency)
    print(f"\n💰 Subtotal: {format_currency(receipt.subtotal, currency)}")

    m = processor.metrics
    print(f"\n⚡ Processed in {m.processing_time:.2f}s using {m.workers_used} workers")
    return 0


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='groupsplit - receipt splitting and group settlement ledger',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  groupsplit                     # Interactive mode
  groupsplit receipt.jpg         # Process image then interactive
  groupsplit receipt.jpg --quick # Quick mode - show parsed items only
  groupsplit --workers 8         # Use 8 parallel OCR workers
        """
    )
    parser.add_argument('image', nargs='?', help='Receipt image to process')
    parser.add_argument(
        '--workers',
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help=f'Number of parallel OCR workers (default: {DEFAULT_MAX_WORKERS})'
    )
    parser.add_argument('--currency', default=CURRENCY_DEFAULT, help='Currency code for display')
    parser.add_argument('--quick', action='store_true', help='Process image and show parsed items only')
    parser.add_argument('--version', action='version', version='groupsplit 1.0')

    args = parser.parse_args()

    if not WORKERS_MIN <= args.workers <= WORKERS_MAX:
        print(f"⚠ Workers must be between {WORKERS_MIN} and {WORKERS_MAX}")
        args.workers = max(WORKERS_MIN, min(WORKERS_MAX, args.workers))

    if args.quick and args.image:
        if not os.path.exists(args.image):
            print(f"❌ File not found: {args.image}")
            sys.exit(1)
        sys.exit(quick_process(args.image, args.workers, args.currency))

    cli = GroupsplitCLI(ParallelOCRProcessor(num_workers=args.workers), currency=args.currency)

    if args.image:
        if os.path.exists(args.image):
            cli.process_receipt(args.image)
        else:
            print(f"⚠ File not found: {args.image}")

    try:
        cli.run()
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")


if __name__ == "__main__":
    main()
