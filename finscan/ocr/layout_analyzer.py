"""Line grouping for Tesseract word output.

Reassembles recognised words into text lines with enclosing boxes so the
structured layout of a page survives alongside its plain text.
"""

from finscan.utils.logger import get_logger

from .tesseract_engine import BoundingBox, OCRLine, OCRWord

logger = get_logger(__name__)


class LayoutAnalyzer:
    """Groups OCR words into lines by block, paragraph and line number."""

    def group_lines(self, words: list[OCRWord]) -> list[OCRLine]:
        """Group words into lines in reading order.

        Args:
            words: Word detections from a single recognition pass.

        Returns:
            Lines ordered by block, paragraph and line number, each with
            words ordered by word number.
        """
        if not words:
            return []

        line_groups: dict[tuple[int, int, int], list[OCRWord]] = {}
        for word in words:
            key = (word.block_num, word.par_num, word.line_num)
            line_groups.setdefault(key, []).append(word)

        lines: list[OCRLine] = []
        for key in sorted(line_groups):
            line_words = sorted(line_groups[key], key=lambda w: w.word_num)
            lines.append(
                OCRLine(
                    text=" ".join(w.text for w in line_words),
                    bbox=self._enclosing_bbox(line_words),
                    words=line_words,
                    confidence=sum(w.confidence for w in line_words) / len(line_words),
                )
            )

        logger.debug("Grouped %d words into %d lines", len(words), len(lines))
        return lines

    def _enclosing_bbox(self, words: list[OCRWord]) -> BoundingBox:
        x_min = min(w.bbox.x for w in words)
        y_min = min(w.bbox.y for w in words)
        x_max = max(w.bbox.x + w.bbox.width for w in words)
        y_max = max(w.bbox.y + w.bbox.height for w in words)
        return BoundingBox(x_min, y_min, x_max - x_min, y_max - y_min)
