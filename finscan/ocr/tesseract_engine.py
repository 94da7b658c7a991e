"""Tesseract OCR engine wrapper with word-level extraction.

Runs one recognition pass per call with a given page segmentation mode,
returning the text, mean word confidence, the raw TSV layout dump and
parsed word records.
"""

import csv
import io
import shlex
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import pytesseract
from PIL import Image

from finscan.errors import BackendUnavailableError, RecognitionError
from finscan.utils.config import OCRConfig
from finscan.utils.logger import get_logger

logger = get_logger(__name__)


class PageSegMode(IntEnum):
    """Tesseract page segmentation modes used by the retry loop."""

    AUTO_OSD = 1
    AUTO = 3
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7


@dataclass
class BoundingBox:
    """Axis-aligned bounding box for a detected element."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class OCRWord:
    """A single word extracted by OCR with position and confidence (0-100)."""

    text: str
    bbox: BoundingBox
    confidence: float
    block_num: int
    par_num: int
    line_num: int
    word_num: int


@dataclass
class OCRLine:
    """Words sharing a Tesseract block, paragraph and line number."""

    text: str
    bbox: BoundingBox
    words: list[OCRWord]
    confidence: float


@dataclass
class OCRResult:
    """Result of a single recognition attempt."""

    text: str
    confidence: float
    psm: int
    words: list[OCRWord] = field(default_factory=list)
    lines: list[OCRLine] = field(default_factory=list)
    tsv: str | None = None
    attempt: int = 1
    low_confidence: bool = False


def parse_tsv(tsv: str) -> list[OCRWord]:
    """Parse Tesseract TSV output into word records.

    Rows without text or with a negative confidence (layout-only rows)
    are skipped.
    """
    words: list[OCRWord] = []
    if not tsv:
        return words

    reader = csv.DictReader(io.StringIO(tsv), delimiter="\t", quoting=csv.QUOTE_NONE)
    for row in reader:
        word_text = (row.get("text") or "").strip()
        try:
            conf = float(row.get("conf") or -1)
        except ValueError:
            continue
        if conf < 0 or not word_text:
            continue
        words.append(
            OCRWord(
                text=word_text,
                bbox=BoundingBox(
                    x=int(row["left"]),
                    y=int(row["top"]),
                    width=int(row["width"]),
                    height=int(row["height"]),
                ),
                confidence=conf,
                block_num=int(row["block_num"]),
                par_num=int(row["par_num"]),
                line_num=int(row["line_num"]),
                word_num=int(row["word_num"]),
            )
        )
    return words


def upscale_for_recognition(
    image: np.ndarray, min_dimension: int = 1000, target_dimension: int = 2000
) -> np.ndarray:
    """Enlarge small images so the shorter side reaches ``target_dimension``.

    Args:
        image: Input image as a numpy array.
        min_dimension: Images whose shorter side is below this are scaled.
        target_dimension: Desired length of the shorter side after scaling.

    Returns:
        The upscaled image (Lanczos resampling), or ``image`` unchanged.
    """
    h, w = image.shape[:2]
    shorter = min(h, w)
    if shorter == 0 or shorter >= min_dimension:
        return image

    scale = target_dimension / shorter
    size = (round(w * scale), round(h * scale))
    resized = Image.fromarray(image).resize(size, Image.Resampling.LANCZOS)
    logger.debug("Upscaled image from %dx%d to %dx%d", w, h, size[0], size[1])
    return np.array(resized)


class TesseractEngine:
    """Wrapper around Tesseract tuned for financial documents.

    The engine is acquired with :meth:`open` (or ``with``) and released
    with :meth:`close`; recognising on a closed engine is an error.

    Args:
        config: OCR configuration (language, whitelist, timeout).
    """

    def __init__(self, config: OCRConfig) -> None:
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
        self.config = config
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "TesseractEngine":
        """Verify the Tesseract binary is available and mark the engine usable.

        Raises:
            BackendUnavailableError: If Tesseract is not installed.
        """
        try:
            version = pytesseract.get_tesseract_version()
        except OSError as exc:
            raise BackendUnavailableError(
                "Tesseract OCR engine is not available"
            ) from exc
        logger.debug("Opened Tesseract %s", version)
        self._open = True
        return self

    def close(self) -> None:
        if self._open:
            logger.debug("Terminated Tesseract engine")
        self._open = False

    def __enter__(self) -> "TesseractEngine":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def build_config(self, psm: int) -> str:
        """Build the Tesseract command-line configuration for ``psm``."""
        whitelist = shlex.quote(f"tessedit_char_whitelist={self.config.char_whitelist}")
        return " ".join(
            [
                f"--psm {psm}",
                "--oem 3",
                f"-c {whitelist}",
                "-c preserve_interword_spaces=1",
                "-c tessedit_enable_doc_dict=1",
                "-c textord_force_make_prop_words=1",
                "-c tessedit_enable_new_segsearch=1",
                f"-c tessedit_ocr_timeout_per_word={self.config.word_timeout}",
            ]
        )

    def recognize(self, image: np.ndarray, psm: int = PageSegMode.AUTO) -> OCRResult:
        """Run one recognition pass.

        Args:
            image: Input image as a numpy array.
            psm: Tesseract page segmentation mode.

        Returns:
            OCRResult with text, mean word confidence and TSV layout.

        Raises:
            RecognitionError: If the engine is closed, fails or times out.
        """
        if not self._open:
            raise RecognitionError("Tesseract engine is not open")

        config = self.build_config(int(psm))
        pil_image = Image.fromarray(image)
        timeout = self.config.attempt_timeout_s

        try:
            text = pytesseract.image_to_string(
                pil_image, lang=self.config.lang, config=config, timeout=timeout
            )
            tsv = pytesseract.image_to_data(
                pil_image, lang=self.config.lang, config=config, timeout=timeout
            )
        except RuntimeError as exc:
            # TesseractError and pytesseract timeouts are both RuntimeErrors.
            raise RecognitionError(f"Text recognition failed: {exc}") from exc

        words = parse_tsv(tsv)
        confidence = sum(w.confidence for w in words) / len(words) if words else 0.0

        logger.info(
            "OCR (psm=%d) extracted %d words with mean confidence %.1f",
            int(psm),
            len(words),
            confidence,
        )
        return OCRResult(
            text=text,
            confidence=confidence,
            psm=int(psm),
            words=words,
            tsv=tsv or None,
        )
