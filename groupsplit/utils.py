"""
Utility functions for groupsplit
"""

import mimetypes
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from groupsplit.config import MAX_IMAGE_SIZE_BYTES, PROGRESS_BAR_LENGTH

ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.gif', '.webp', '.heic'}

CURRENCY_SYMBOLS = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'BGN': 'лв',
}


def validate_image_path(image_path: str) -> bool:
    """Image path validation with basic security checks"""
    if not isinstance(image_path, str):
        print("Image path must be a string")
        return False

    path = Path(image_path)

    # Security: Basic directory traversal check
    if '..' in path.parts:
        print(f"Security risk: Invalid path pattern: {image_path}")
        return False

    if not path.is_file():
        print(f"File not found: {image_path}")
        return False

    if path.stat().st_size > MAX_IMAGE_SIZE_BYTES:
        print(f"File too large: {path.stat().st_size} bytes (max: {MAX_IMAGE_SIZE_BYTES})")
        return False

    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        print(f"Unsupported file extension: {path.suffix}")
        return False

    mime_type, _ = mimetypes.guess_type(str(path))
    if mime_type and not mime_type.startswith('image/'):
        print(f"Invalid MIME type: {mime_type}")
        return False

    return True


def format_currency(amount: Decimal, currency: str = 'USD') -> str:
    """Format a currency amount with its symbol; no conversion"""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    amount = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = '-' if amount < 0 else ''

    if currency in ['USD', 'EUR', 'GBP']:
        return f"{sign}{symbol}{abs(amount):,.2f}"
    return f"{sign}{abs(amount):,.2f} {symbol}"


def try_parse_decimal(value: str) -> Optional[Decimal]:
    """Safely parse a money amount, accepting '$' and a decimal comma"""
    if not isinstance(value, str):
        return None
    cleaned = value.strip().lstrip('$').replace(',', '.')
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def try_parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


def validate_menu_choice(choice: str, valid_choices: list[str]) -> Optional[str]:
    """Validate a menu choice against allowed options"""
    if not isinstance(choice, str):
        return None
    choice = choice.strip()
    return choice if choice in set(valid_choices) else None


def create_progress_callback(description: str = "Processing"):
    """Create a progress callback that draws a bar for 0-100 percent"""
    def progress_callback(percent: int):
        filled_length = int(PROGRESS_BAR_LENGTH * percent // 100)
        bar = '█' * filled_length + '░' * (PROGRESS_BAR_LENGTH - filled_length)
        print(f"\r{description}: [{bar}] {percent:5.1f}%", end='', flush=True)
        if percent >= 100:
            print()

    return progress_callback


def clean_text_for_display(text: str, max_length: int = 100) -> str:
    """Clean text for safe display in the terminal"""
    if not isinstance(text, str):
        return ""

    # Remove control characters
    text = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', text)

    # Normalize whitespace
    text = ' '.join(text.split())

    if len(text) > max_length:
        text = text[:max_length - 3] + "..."

    return text
