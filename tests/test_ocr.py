"""Tests for the Tesseract engine wrapper and line grouping."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from finscan.errors import BackendUnavailableError, RecognitionError
from finscan.ocr.layout_analyzer import LayoutAnalyzer
from finscan.ocr.tesseract_engine import (
    BoundingBox,
    OCRResult,
    OCRWord,
    PageSegMode,
    TesseractEngine,
    parse_tsv,
    upscale_for_recognition,
)
from finscan.utils.config import OCRConfig

_TSV_HEADER = (
    "level\tpage_num\tblock_num\tpar_num\tline_num\tword_num\t"
    "left\ttop\twidth\theight\tconf\ttext"
)


def _tsv(*rows: str) -> str:
    return "\n".join([_TSV_HEADER, *rows]) + "\n"


_SAMPLE_TSV = _tsv(
    "1\t1\t0\t0\t0\t0\t0\t0\t600\t400\t-1\t",
    "5\t1\t1\t1\t1\t1\t10\t10\t50\t20\t95\tBasic",
    "5\t1\t1\t1\t1\t2\t70\t10\t50\t20\t85\tSalary",
    "5\t1\t1\t1\t2\t1\t10\t40\t60\t20\t60\t25,000",
    "5\t1\t1\t1\t2\t2\t80\t40\t10\t20\t40\t ",
)


def _make_ocr_word(
    text: str = "hello",
    x: int = 10,
    y: int = 10,
    width: int = 50,
    height: int = 20,
    confidence: float = 90.0,
    block_num: int = 1,
    par_num: int = 1,
    line_num: int = 1,
    word_num: int = 1,
) -> OCRWord:
    """Create a test OCRWord with defaults."""
    return OCRWord(
        text=text,
        bbox=BoundingBox(x=x, y=y, width=width, height=height),
        confidence=confidence,
        block_num=block_num,
        par_num=par_num,
        line_num=line_num,
        word_num=word_num,
    )


@pytest.fixture
def mock_pytesseract():
    """Patch pytesseract inside the engine module."""
    with patch("finscan.ocr.tesseract_engine.pytesseract") as mock_pt:
        mock_pt.get_tesseract_version.return_value = "5.3.0"
        yield mock_pt


class TestParseTSV:
    """Tests for Tesseract TSV parsing."""

    def test_skips_layout_rows_and_blank_words(self) -> None:
        words = parse_tsv(_SAMPLE_TSV)
        assert [w.text for w in words] == ["Basic", "Salary", "25,000"]

    def test_word_fields(self) -> None:
        word = parse_tsv(_SAMPLE_TSV)[2]
        assert word.confidence == 60.0
        assert word.bbox == BoundingBox(x=10, y=40, width=60, height=20)
        assert (word.block_num, word.par_num, word.line_num, word.word_num) == (1, 1, 2, 1)

    def test_empty_input(self) -> None:
        assert parse_tsv("") == []
        assert parse_tsv(_tsv()) == []


class TestUpscale:
    """Tests for small-image upscaling before recognition."""

    def test_small_image_scaled_to_target(self) -> None:
        image = np.zeros((500, 800), dtype=np.uint8)
        result = upscale_for_recognition(image, 1000, 2000)
        assert result.shape == (2000, 3200)

    def test_large_image_untouched(self) -> None:
        image = np.zeros((1200, 1600), dtype=np.uint8)
        assert upscale_for_recognition(image, 1000, 2000) is image


class TestTesseractEngine:
    """Tests for the TesseractEngine class (mocked)."""

    def test_open_and_close(self, mock_pytesseract: MagicMock) -> None:
        engine = TesseractEngine(OCRConfig())
        assert not engine.is_open
        engine.open()
        assert engine.is_open
        engine.close()
        assert not engine.is_open

    def test_context_manager_closes(self, mock_pytesseract: MagicMock) -> None:
        with TesseractEngine(OCRConfig()) as engine:
            assert engine.is_open
        assert not engine.is_open

    def test_missing_binary_is_backend_unavailable(
        self, mock_pytesseract: MagicMock
    ) -> None:
        mock_pytesseract.get_tesseract_version.side_effect = OSError("not found")
        with pytest.raises(BackendUnavailableError):
            TesseractEngine(OCRConfig()).open()

    def test_recognize_requires_open_engine(self, mock_pytesseract: MagicMock) -> None:
        engine = TesseractEngine(OCRConfig())
        with pytest.raises(RecognitionError, match="not open"):
            engine.recognize(np.zeros((10, 10), dtype=np.uint8))

    def test_recognize(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = "Basic Salary\n25,000\n"
        mock_pytesseract.image_to_data.return_value = _SAMPLE_TSV

        with TesseractEngine(OCRConfig()) as engine:
            result = engine.recognize(
                np.zeros((100, 200), dtype=np.uint8), PageSegMode.SINGLE_BLOCK
            )

        assert isinstance(result, OCRResult)
        assert result.text == "Basic Salary\n25,000\n"
        assert result.psm == 6
        assert result.confidence == pytest.approx((95 + 85 + 60) / 3)
        assert result.tsv == _SAMPLE_TSV
        assert len(result.words) == 3

        _, kwargs = mock_pytesseract.image_to_string.call_args
        assert kwargs["lang"] == "eng"
        assert "--psm 6" in kwargs["config"]
        assert kwargs["timeout"] == 60.0

    def test_recognize_no_words_has_zero_confidence(
        self, mock_pytesseract: MagicMock
    ) -> None:
        mock_pytesseract.image_to_string.return_value = ""
        mock_pytesseract.image_to_data.return_value = _tsv()

        with TesseractEngine(OCRConfig()) as engine:
            result = engine.recognize(np.zeros((100, 200), dtype=np.uint8))

        assert result.text == ""
        assert result.words == []
        assert result.confidence == 0.0

    def test_engine_failure_is_recognition_error(
        self, mock_pytesseract: MagicMock
    ) -> None:
        mock_pytesseract.image_to_string.side_effect = RuntimeError("Tesseract process timeout")

        with TesseractEngine(OCRConfig()) as engine:
            with pytest.raises(RecognitionError, match="timeout"):
                engine.recognize(np.zeros((100, 200), dtype=np.uint8))

    def test_build_config(self, mock_pytesseract: MagicMock) -> None:
        config = TesseractEngine(OCRConfig(char_whitelist="0123 ")).build_config(3)
        assert config.startswith("--psm 3 --oem 3")
        assert "-c 'tessedit_char_whitelist=0123 '" in config
        assert "preserve_interword_spaces=1" in config
        assert "-c tessedit_enable_new_segsearch=1" in config
        assert "-c tessedit_ocr_timeout_per_word=60" in config

    def test_build_config_word_timeout(self, mock_pytesseract: MagicMock) -> None:
        config = TesseractEngine(OCRConfig(word_timeout=90)).build_config(6)
        assert config.endswith("-c tessedit_ocr_timeout_per_word=90")

    def test_custom_tesseract_cmd(self, mock_pytesseract: MagicMock) -> None:
        TesseractEngine(OCRConfig(tesseract_cmd="/usr/bin/tesseract"))
        assert mock_pytesseract.pytesseract.tesseract_cmd == "/usr/bin/tesseract"


class TestLayoutAnalyzer:
    """Tests for grouping words into lines."""

    def test_empty_words(self) -> None:
        assert LayoutAnalyzer().group_lines([]) == []

    def test_groups_by_line_in_reading_order(self) -> None:
        words = [
            _make_ocr_word(text="25,000", line_num=2, word_num=1),
            _make_ocr_word(text="Salary", line_num=1, word_num=2),
            _make_ocr_word(text="Basic", line_num=1, word_num=1),
        ]
        lines = LayoutAnalyzer().group_lines(words)
        assert [line.text for line in lines] == ["Basic Salary", "25,000"]

    def test_line_bbox_and_confidence(self) -> None:
        words = [
            _make_ocr_word(x=10, y=20, width=50, height=20, confidence=80.0, word_num=1),
            _make_ocr_word(x=70, y=25, width=60, height=20, confidence=60.0, word_num=2),
        ]
        line = LayoutAnalyzer().group_lines(words)[0]
        assert line.bbox == BoundingBox(10, 20, 120, 25)
        assert line.confidence == pytest.approx(70.0)
