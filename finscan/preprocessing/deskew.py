"""Deskew correction for binarized document images.

Estimates skew from the minimum-area rectangle enclosing the text pixels
and rotates the page back when the angle exceeds a small tolerance.
"""

import numpy as np

from finscan.utils.logger import get_logger

from .backend import ImageBackend

logger = get_logger(__name__)


def normalize_angle(angle: float) -> float:
    """Map a min-area-rectangle angle into the range (-45, 45].

    OpenCV reports an axis-aligned rectangle as either 0 or 90 degrees
    depending on version; both mean "no skew".
    """
    while angle > 45:
        angle -= 90
    while angle <= -45:
        angle += 90
    return angle


def detect_skew_angle(binary: np.ndarray, backend: ImageBackend) -> float:
    """Estimate the skew angle of a binary page image.

    Text is dark on a light background after thresholding, so the image
    is inverted before collecting foreground points.

    Args:
        binary: Binary image with values 0 and 255.
        backend: Image backend used for point and rectangle computations.

    Returns:
        Skew angle in degrees, ``0.0`` when the page has no text pixels.
    """
    points = backend.find_foreground_points(255 - binary)
    if points is None or len(points) == 0:
        logger.debug("No foreground pixels for skew estimation")
        return 0.0

    angle = normalize_angle(backend.min_area_angle(points))
    logger.debug("Detected skew angle: %.2f degrees", angle)
    return angle


def deskew(
    binary: np.ndarray, backend: ImageBackend, tolerance: float = 0.1
) -> np.ndarray:
    """Straighten a binary page image.

    Args:
        binary: Binary image with values 0 and 255.
        backend: Image backend used for detection and rotation.
        tolerance: Angles with magnitude at or below this are left alone.

    Returns:
        A new image, rotated about its centre by the detected angle when
        correction applies. OpenCV rotates positive angles counter-clockwise
        in image coordinates, which undoes a skew measured as that angle.
    """
    angle = detect_skew_angle(binary, backend)

    if abs(angle) <= tolerance:
        logger.debug("Skew %.2f within tolerance, skipping correction", angle)
        return binary.copy()

    logger.info("Applied deskew correction: %.2f degrees", angle)
    return backend.rotate(binary, angle)
