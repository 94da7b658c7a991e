"""Shared test fixtures for the finscan test suite."""

import io
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from finscan.dispatcher import ExtractionDispatcher
from finscan.ocr.tesseract_engine import OCRResult
from finscan.utils.config import AppConfig

SALARY_SLIP_TEXT = (
    "ACME Corp Pay Slip for March 2024\n"
    "Employee ID: EMP-1042\n"
    "Basic Salary: Rs. 25,000.00\n"
    "HRA: 10,000\n"
    "Net Pay: ₹32,500.00\n"
)

BANK_STATEMENT_TEXT = (
    "Statement of Account\n"
    "Account No: 123456789012\n"
    "Opening Balance: ₹10,000.00\n"
    "Closing Balance: ₹12,345.67\n"
)


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.full((200, 300), 255, dtype=np.uint8)
    image[80:120, 50:250] = 0
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.full((200, 300, 3), 255, dtype=np.uint8)
    image[80:120, 50:250] = (0, 0, 0)
    return image


@pytest.fixture
def png_bytes(sample_color_image: np.ndarray) -> bytes:
    """Encode the synthetic RGB image as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(sample_color_image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


class CountingPreprocessor:
    """Preprocessor double that records calls and returns its input."""

    def __init__(self) -> None:
        self.calls = 0

    def process(self, image: np.ndarray) -> np.ndarray:
        self.calls += 1
        return image


class CountingOCRDriver:
    """OCR driver double returning a canned result."""

    def __init__(self, result: OCRResult | None = None) -> None:
        self.calls = 0
        self.result = result or OCRResult(
            text=SALARY_SLIP_TEXT, confidence=72.0, psm=1, attempt=2
        )

    async def recognize(self, image, cancel_event=None) -> OCRResult:
        self.calls += 1
        return self.result


class StubPDFHandler:
    """PDF handler double serving fixed page texts and images."""

    def __init__(
        self, pages: list[str] | None = None, images: list[np.ndarray] | None = None
    ) -> None:
        self.pages = pages if pages is not None else [BANK_STATEMENT_TEXT]
        self.images = images or []
        self.render_calls = 0

    def extract_page_texts(self, data: bytes) -> list[str]:
        return list(self.pages)

    def pdf_to_images(self, data: bytes) -> list[np.ndarray]:
        self.render_calls += 1
        return list(self.images)


class StubBackend:
    """Backend double whose decode returns a blank page."""

    def decode(self, data: bytes) -> np.ndarray:
        return np.full((100, 100, 3), 255, dtype=np.uint8)


@dataclass
class DispatcherHarness:
    """A dispatcher together with the doubles it was built from."""

    dispatcher: ExtractionDispatcher
    preprocessor: CountingPreprocessor
    ocr_driver: CountingOCRDriver
    pdf_handler: StubPDFHandler


@pytest.fixture
def make_dispatcher() -> Callable[..., DispatcherHarness]:
    """Factory for dispatchers wired to doubles instead of OpenCV, Tesseract and pdfplumber."""

    def _make(
        config: AppConfig | None = None,
        pages: list[str] | None = None,
        images: list[np.ndarray] | None = None,
        backend: object | None = None,
    ) -> DispatcherHarness:
        preprocessor = CountingPreprocessor()
        ocr_driver = CountingOCRDriver()
        pdf_handler = StubPDFHandler(pages, images)
        dispatcher = ExtractionDispatcher(
            config=config or AppConfig(),
            backend=backend or StubBackend(),
            preprocessor=preprocessor,
            ocr_driver=ocr_driver,
            pdf_handler=pdf_handler,
        )
        return DispatcherHarness(dispatcher, preprocessor, ocr_driver, pdf_handler)

    return _make


@pytest.fixture
def salary_slip_text() -> str:
    """Recognised text of a small salary slip."""
    return SALARY_SLIP_TEXT


@pytest.fixture
def bank_statement_text() -> str:
    """Recognised text of a small bank statement."""
    return BANK_STATEMENT_TEXT
