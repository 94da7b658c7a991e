"""Image-processing capability interface and its OpenCV implementation.

The preprocessor only talks to :class:`ImageBackend`, so the concrete
vision library can be swapped (or faked in tests) without touching the
thresholding and deskew logic.
"""

import io
from typing import Protocol

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from finscan.errors import RecognitionError
from finscan.utils.logger import get_logger

logger = get_logger(__name__)


class ImageBackend(Protocol):
    """Operations the image preprocessor needs from a vision library."""

    def decode(self, data: bytes) -> np.ndarray: ...

    def to_grayscale(self, image: np.ndarray) -> np.ndarray: ...

    def adaptive_threshold(
        self, gray: np.ndarray, block_size: int, constant: int
    ) -> np.ndarray: ...

    def find_foreground_points(self, binary: np.ndarray) -> np.ndarray | None: ...

    def min_area_angle(self, points: np.ndarray) -> float: ...

    def rotate(self, image: np.ndarray, angle: float) -> np.ndarray: ...


class OpenCVBackend:
    """:class:`ImageBackend` backed by OpenCV, with Pillow for decoding.

    Stateless; one instance is shared by every extraction in the process.
    """

    def decode(self, data: bytes) -> np.ndarray:
        """Decode image bytes into an RGB array.

        Transparent regions are composited onto a white background, since
        recognition performs poorly on dark or transparent backdrops.

        Raises:
            RecognitionError: If the bytes are not a readable image.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                if img.mode in ("RGBA", "LA") or "transparency" in img.info:
                    rgba = img.convert("RGBA")
                    canvas = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
                    canvas.alpha_composite(rgba)
                    rgb = canvas.convert("RGB")
                else:
                    rgb = img.convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise RecognitionError(f"Could not decode image: {exc}") from exc

        logger.debug("Decoded image %dx%d", rgb.width, rgb.height)
        return np.array(rgb)

    def to_grayscale(self, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image.copy()
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)

    def adaptive_threshold(
        self, gray: np.ndarray, block_size: int, constant: int
    ) -> np.ndarray:
        return cv2.adaptiveThreshold(
            gray,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            block_size,
            constant,
        )

    def find_foreground_points(self, binary: np.ndarray) -> np.ndarray | None:
        """Return the coordinates of non-zero pixels, or ``None`` if there are none."""
        return cv2.findNonZero(binary)

    def min_area_angle(self, points: np.ndarray) -> float:
        """Return the rotation angle of the minimum-area rectangle around ``points``."""
        _, _, angle = cv2.minAreaRect(points)
        return float(angle)

    def rotate(self, image: np.ndarray, angle: float) -> np.ndarray:
        """Rotate ``image`` about its centre, keeping the original size."""
        h, w = image.shape[:2]
        center = (w / 2, h / 2)
        rotation_matrix = cv2.getRotationMatrix2D(center, angle, 1.0)
        return cv2.warpAffine(
            image,
            rotation_matrix,
            (w, h),
            flags=cv2.INTER_CUBIC,
            borderMode=cv2.BORDER_REPLICATE,
        )
