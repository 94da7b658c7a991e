"""Image preprocessing pipeline for document OCR.

Converts to grayscale, generates binarization attempts, selects one and
deskews it. Preprocessing is best effort: any failure falls back to the
unmodified input so recognition can still run.
"""

import numpy as np

from finscan.utils.config import PreprocessingConfig
from finscan.utils.logger import get_logger

from .backend import ImageBackend
from .binarize import generate_attempts, select_attempt
from .deskew import deskew

logger = get_logger(__name__)


class ImagePreprocessor:
    """Grayscale, binarize and deskew raster images before recognition.

    Args:
        config: Preprocessing configuration.
        backend: Image backend implementing the vision operations.
    """

    def __init__(self, config: PreprocessingConfig, backend: ImageBackend) -> None:
        self.config = config
        self.backend = backend

    def process(self, image: np.ndarray) -> np.ndarray:
        """Run preprocessing on a decoded image.

        Args:
            image: Input document image (RGB, RGBA or grayscale).

        Returns:
            A new binarized, deskewed image, or a copy of ``image`` when
            preprocessing is disabled or fails.
        """
        if not self.config.enabled:
            return image.copy()

        try:
            gray = self.backend.to_grayscale(image)
            attempts = generate_attempts(
                gray, self.backend, self.config.threshold_params
            )
            selected = select_attempt(attempts)
            result = deskew(selected.image, self.backend, self.config.deskew_tolerance)
        except Exception as exc:
            logger.warning("Preprocessing failed, using original image: %s", exc)
            return image.copy()

        logger.info(
            "Preprocessing complete: %dx%d using %s",
            result.shape[1],
            result.shape[0],
            selected.label,
        )
        return result
