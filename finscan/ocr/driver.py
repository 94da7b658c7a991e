"""Multi-attempt OCR driver with confidence-based result selection.

Each attempt targets a different assumed page layout by cycling through
page segmentation modes. The best-confidence result is kept, and the loop
stops early once a result is good enough.
"""

import asyncio
import dataclasses
from collections.abc import Callable

import numpy as np

from finscan.errors import ExtractionCancelledError
from finscan.utils.config import OCRConfig
from finscan.utils.logger import get_logger

from .layout_analyzer import LayoutAnalyzer
from .tesseract_engine import OCRResult, TesseractEngine, upscale_for_recognition

logger = get_logger(__name__)

TABLE_DATA_MARKER = "--- TABLE DATA ---"


def check_cancelled(cancel_event: asyncio.Event | None, stage: str) -> None:
    """Raise :class:`ExtractionCancelledError` if cancellation was requested."""
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelledError(f"Extraction cancelled before {stage}")


class OCRDriver:
    """Runs recognition attempts against a per-call Tesseract engine.

    Args:
        config: OCR configuration with retry ceiling and thresholds.
        engine_factory: Creates an unopened engine; called once per
            :meth:`recognize` call. Defaults to :class:`TesseractEngine`.
    """

    def __init__(
        self,
        config: OCRConfig,
        engine_factory: Callable[[], TesseractEngine] | None = None,
    ) -> None:
        self.config = config
        self.engine_factory = engine_factory or (lambda: TesseractEngine(config))
        self.layout_analyzer = LayoutAnalyzer()

    def psm_for_attempt(self, attempt_index: int) -> int:
        """Return the page segmentation mode for a zero-based attempt index."""
        sequence = self.config.psm_sequence
        return sequence[attempt_index % len(sequence)]

    async def recognize(
        self, image: np.ndarray, cancel_event: asyncio.Event | None = None
    ) -> OCRResult:
        """Recognise text, keeping the highest-confidence attempt.

        Args:
            image: Preprocessed page image.
            cancel_event: Optional signal checked before every attempt.

        Returns:
            The best result. When no attempt produced text, an empty
            result with confidence 0.

        Raises:
            BackendUnavailableError: If Tesseract cannot be started.
            RecognitionError: If an attempt fails outright.
            ExtractionCancelledError: If ``cancel_event`` is set.
        """
        image = await asyncio.to_thread(
            upscale_for_recognition,
            image,
            self.config.min_dimension,
            self.config.target_dimension,
        )

        engine = self.engine_factory()
        await asyncio.to_thread(engine.open)
        try:
            best = await self._run_attempts(engine, image, cancel_event)
        finally:
            engine.close()

        if best is None:
            logger.warning("OCR produced no text in %d attempts", self.config.max_attempts)
            best = OCRResult(text="", confidence=0.0, psm=self.psm_for_attempt(0))

        if best.confidence < self.config.low_confidence_threshold:
            logger.warning(
                "Final OCR confidence is very low: %.1f (psm=%d)",
                best.confidence,
                best.psm,
            )
            best = dataclasses.replace(best, low_confidence=True)
        return best

    async def _run_attempts(
        self,
        engine: TesseractEngine,
        image: np.ndarray,
        cancel_event: asyncio.Event | None,
    ) -> OCRResult | None:
        best: OCRResult | None = None

        for i in range(self.config.max_attempts):
            check_cancelled(cancel_event, f"OCR attempt {i + 1}")
            psm = self.psm_for_attempt(i)
            result = await asyncio.to_thread(engine.recognize, image, psm)
            logger.info(
                "OCR attempt %d confidence: %.1f (psm=%d)", i + 1, result.confidence, psm
            )

            if result.text.strip() and (best is None or result.confidence > best.confidence):
                best = self._finalize(result, attempt=i + 1)

            if best is not None and best.confidence > self.config.early_exit_confidence:
                break

        return best

    def _finalize(self, result: OCRResult, attempt: int) -> OCRResult:
        text = result.text
        if result.tsv and self.config.include_table_data:
            text = f"{text}\n\n{TABLE_DATA_MARKER}\n{result.tsv}"
        return dataclasses.replace(
            result,
            text=text,
            attempt=attempt,
            lines=self.layout_analyzer.group_lines(result.words),
        )
