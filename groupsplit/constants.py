"""
Rule tables for receipt line parsing and money rounding.

Every reject pattern only ever drops a line, so the table order carries no
meaning. Category keyword sets are checked in the order listed and the
first hit wins.
"""

from decimal import Decimal

DECIMAL_QUANTIZE = Decimal("0.01")

REJECT_PATTERNS = {
    'summary_header': r'^(?:subtotal|sub total|tax|total|tip|gratuity|thank|welcome|receipt|date|time)',
    'payment': r'^(?:card|visa|mastercard|amex|discover|check|cash|change)',
    'staff_or_table': r'^(?:guest|server|table)',
    'date': r'^\d{2}[/\-]\d{2}',
    'separator': r'^[*\-=_]+$',
    'long_digits': r'^\d{4,}',
    'order_number': r'^#\d+',
    'contact': r'phone|fax|www|http|@',
}

# Optional currency marker, then a decimal number at the very end of the line
PRICE_PATTERN = r'\$?\s*(\d+(?:\.\d{0,2})?)\s*$'

# Everything except letters, digits, whitespace, hyphen, apostrophe, ampersand
NAME_STRIP_PATTERN = r"[^\w\s\-'&]|_"

CATEGORY_KEYWORDS = (
    ('drink', (
        'beer', 'wine', 'cocktail', 'margarita', 'martini', 'vodka', 'rum',
        'whiskey', 'bourbon', 'soda', 'sprite', 'coke', 'pepsi', 'tea',
        'coffee', 'juice', 'lemonade', 'water', 'iced', 'latte', 'espresso',
        'mocha', 'chai', 'milk', 'shake',
    )),
    ('pizza', (
        'pizza', 'pie', 'slice', 'margherita', 'pepperoni', 'cheese pizza',
    )),
    ('appetizer', (
        'app', 'appetizer', 'starter', 'dip', 'nachos', 'wings', 'fries',
        'chips', 'bread', 'salad', 'soup', 'mozzarella', 'calamari',
        'bruschetta', 'hummus', 'guac', 'guacamole', 'spinach', 'loaded',
    )),
    ('entree', (
        'burger', 'steak', 'chicken', 'fish', 'salmon', 'shrimp', 'pasta',
        'entree', 'dinner', 'lunch', 'sandwich', 'wrap', 'taco', 'tacos',
        'burrito', 'bowl', 'rice', 'noodle', 'noodles', 'curry', 'grilled',
        'fried', 'baked', 'roasted',
    )),
)
