"""
Centralized configuration for groupsplit with environment
"""

import os
from decimal import Decimal

# OCR settings
OCR_PSM = int(os.getenv("GROUPSPLIT_OCR_PSM", "6"))
OCR_LANGUAGES = os.getenv("GROUPSPLIT_OCR_LANGUAGES", "eng")
OCR_TIMEOUT_SECONDS = int(os.getenv("GROUPSPLIT_OCR_TIMEOUT", "30"))

# Runtime settings
DEFAULT_MAX_WORKERS = int(os.getenv("GROUPSPLIT_MAX_WORKERS", "4"))
CURRENCY_DEFAULT = os.getenv("GROUPSPLIT_DEFAULT_CURRENCY", "USD")
DEBUG = os.getenv("GROUPSPLIT_DEBUG", "0").lower() in ("1", "true", "yes")

# Thresholds
AMOUNT_TOLERANCE = Decimal(os.getenv("GROUPSPLIT_AMOUNT_TOLERANCE", "0.01"))
PERCENTAGE_TOLERANCE = Decimal(os.getenv("GROUPSPLIT_PERCENTAGE_TOLERANCE", "0.1"))
IMAGE_REGION_OVERLAP_PX = int(os.getenv("GROUPSPLIT_IMAGE_OVERLAP", "50"))
MAX_IMAGE_SIZE_BYTES = int(os.getenv("GROUPSPLIT_MAX_IMAGE_SIZE_BYTES", str(50 * 1024 * 1024)))
PROGRESS_BAR_LENGTH = int(os.getenv("GROUPSPLIT_PROGRESS_BAR_LENGTH", "30"))

# Line parsing
MIN_LINE_LENGTH = int(os.getenv("GROUPSPLIT_MIN_LINE_LENGTH", "3"))
ITEM_PRICE_MAX = Decimal(os.getenv("GROUPSPLIT_ITEM_PRICE_MAX", "500"))
ITEM_NAME_MAX_LENGTH = int(os.getenv("GROUPSPLIT_ITEM_NAME_MAX_LENGTH", "50"))

# Workers bounds
WORKERS_MIN = int(os.getenv("GROUPSPLIT_WORKERS_MIN", "1"))
WORKERS_MAX = int(os.getenv("GROUPSPLIT_WORKERS_MAX", "16"))
