"""Multi-strategy adaptive binarization for document images.

Generates several thresholded candidates spanning medium to very large
neighbourhoods, hedging against uneven contrast and paper texture.
"""

from dataclasses import dataclass

import numpy as np

from finscan.utils.logger import get_logger

from .backend import ImageBackend

logger = get_logger(__name__)


@dataclass
class BinarizationAttempt:
    """One thresholded candidate and the parameters that produced it."""

    image: np.ndarray
    block_size: int
    constant: int

    @property
    def label(self) -> str:
        return f"adaptive(block={self.block_size}, c={self.constant})"


def generate_attempts(
    gray: np.ndarray,
    backend: ImageBackend,
    params: list[tuple[int, int]],
) -> list[BinarizationAttempt]:
    """Threshold ``gray`` once per ``(block_size, constant)`` pair.

    Args:
        gray: Single-channel input image.
        backend: Image backend performing the thresholding.
        params: Parameter pairs in preference order.

    Returns:
        Attempts in the same order as ``params``.
    """
    attempts: list[BinarizationAttempt] = []
    for block_size, constant in params:
        binary = backend.adaptive_threshold(gray, block_size, constant)
        attempts.append(BinarizationAttempt(binary, block_size, constant))
        logger.debug("Generated binarization attempt block=%d c=%d", block_size, constant)
    return attempts


def select_attempt(attempts: list[BinarizationAttempt]) -> BinarizationAttempt:
    """Pick the attempt to deskew and recognise.

    Always the first in generation order; attempts are not scored.

    Raises:
        ValueError: If ``attempts`` is empty.
    """
    # TODO: rank attempts by foreground density or edge sharpness once a
    # labelled sample set exists to validate the scoring.
    if not attempts:
        raise ValueError("No binarization attempts to select from")
    selected = attempts[0]
    logger.debug("Selected %s out of %d attempts", selected.label, len(attempts))
    return selected
