"""
OCR Processing module for groupsplit
Text extraction adapter: parallel Tesseract OCR over horizontal bands of a receipt image
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np
import pytesseract
from PIL import Image, ImageEnhance, ImageFilter

from groupsplit.config import (
    DEBUG,
    DEFAULT_MAX_WORKERS,
    IMAGE_REGION_OVERLAP_PX,
    OCR_LANGUAGES,
    OCR_PSM,
    OCR_TIMEOUT_SECONDS,
    WORKERS_MAX,
    WORKERS_MIN,
)
from groupsplit.data_models import ExtractionResult, ProcessingMetrics
from groupsplit.utils import validate_image_path

ProgressCallback = Callable[[int], None]

OCR_ERRORS = (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError, OSError)


class ParallelOCRProcessor:
    """Parallel OCR processing of receipt images"""

    def __init__(self, num_workers: int = DEFAULT_MAX_WORKERS, debug: bool = DEBUG):
        self.num_workers = max(WORKERS_MIN, min(WORKERS_MAX, num_workers))
        self.debug = debug
        self.metrics = ProcessingMetrics()
        self._available_languages: Optional[List[str]] = None

    @property
    def available_languages(self) -> List[str]:
        if self._available_languages is None:
            self._available_languages = self._check_languages()
        return self._available_languages

    def _check_languages(self) -> List[str]:
        """Available Tesseract languages"""
        try:
            languages = pytesseract.get_languages(config='')
            if self.debug:
                print(f"✓ Available OCR languages: {', '.join(languages)}")
            return languages
        except OCR_ERRORS as e:
            if self.debug:
                print(f"⚠ Could not check languages: {e}")
            return ['eng']

    def _get_ocr_language(self) -> str:
        """Configured languages that Tesseract actually has, falling back to English"""
        wanted = [lang for lang in OCR_LANGUAGES.split('+') if lang in self.available_languages]
        return '+'.join(wanted) if wanted else 'eng'

    def preprocess_image(self, image: Image.Image) -> Image.Image:
        """Preprocess image to improve OCR accuracy"""
        # Grayscale
        if image.mode != 'L':
            image = image.convert('L')

        # Enhance contrast
        image = ImageEnhance.Contrast(image).enhance(2.0)

        # Apply sharpening
        image = image.filter(ImageFilter.SHARPEN)

        # Remove noise with bilateral filter (using OpenCV)
        img_array = np.array(image)
        img_array = cv2.bilateralFilter(img_array, 9, 75, 75)
        return Image.fromarray(img_array)

    def split_image_into_regions(self, image: Image.Image) -> List[Tuple[int, Image.Image]]:
        """Split image into overlapping horizontal bands"""
        width, height = image.size
        region_height = max(1, height // self.num_workers)
        regions = []

        for i in range(self.num_workers):
            y_start = i * region_height
            if y_start >= height:
                break
            y_end = height if i == self.num_workers - 1 else (i + 1) * region_height + IMAGE_REGION_OVERLAP_PX
            regions.append((i, image.crop((0, y_start, width, min(y_end, height)))))

        return regions

    def process_region(self, region_data: Tuple[int, Image.Image]) -> str:
        """Run OCR on a single band"""
        region_id, region_image = region_data
        if self.debug:
            print(f"  Worker {region_id + 1}: Processing region...")
        text = pytesseract.image_to_string(
            region_image,
            lang=self._get_ocr_language(),
            config=f'--psm {OCR_PSM}',
            timeout=OCR_TIMEOUT_SECONDS,
        )
        if self.debug:
            print(f"  Worker {region_id + 1}: Complete ✓")
        return text

    def _load_image(self, image: Union[str, Image.Image]) -> Image.Image:
        if isinstance(image, Image.Image):
            return image
        if not validate_image_path(image):
            raise ValueError(f"Invalid or unsupported image: {image}")
        return Image.open(image)

    def extract_text(
        self,
        image: Union[str, Image.Image],
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionResult:
        """
        Recognize the text of a receipt image.

        Never raises: failures come back as ExtractionResult(error=...),
        an abandoned scan as ExtractionResult(cancelled=True). Bands that
        fail while others are read are listed in warnings. progress is
        called with whole percentages from 0 to 100.
        """
        start_time = time.time()
        report = progress or (lambda percent: None)
        cancel_event = cancel_event or threading.Event()
        report(0)

        try:
            loaded = self._load_image(image)
            if self.debug:
                print(f"📷 Image loaded: {loaded.size[0]}x{loaded.size[1]} pixels")
            regions = self.split_image_into_regions(self.preprocess_image(loaded))
        except (OSError, ValueError) as e:
            return ExtractionResult(error=f"Could not read image: {e}")
        if cancel_event.is_set():
            return ExtractionResult(cancelled=True)

        self.metrics = ProcessingMetrics(workers_used=self.num_workers, regions_processed=len(regions))
        if self.debug:
            print(f"\n🚀 Starting parallel OCR with {self.num_workers} workers...")

        texts = []
        errors = []
        cancelled = False
        executor = ThreadPoolExecutor(max_workers=self.num_workers)
        try:
            future_to_region = {executor.submit(self.process_region, region): region[0] for region in regions}
            pending = set(future_to_region)
            while pending:
                finished, pending = wait(pending, timeout=0.1, return_when=FIRST_COMPLETED)
                for future in finished:
                    region_id = future_to_region[future]
                    try:
                        texts.append((region_id, future.result()))
                    except OCR_ERRORS as e:
                        errors.append(f"region {region_id + 1}: {e}")
                        if self.debug:
                            print(f"  Worker {region_id + 1} exception: {e}")

                if cancel_event.is_set():
                    cancelled = True
                    return ExtractionResult(cancelled=True)
                if finished:
                    report(int((len(regions) - len(pending)) * 100 / len(regions)))
        finally:
            # Bands still running after a cancel are left to finish on their own
            executor.shutdown(wait=not cancelled, cancel_futures=cancelled)

        self.metrics.processing_time = time.time() - start_time
        if not texts:
            return ExtractionResult(error="; ".join(errors) or "No text recognized")

        texts.sort(key=lambda x: x[0])
        if self.debug:
            print(f"✅ OCR complete in {self.metrics.processing_time:.2f}s")
        return ExtractionResult(text='\n'.join(text for _, text in texts), warnings=errors)
