"""Image cleanup applied before local OCR.

Scans and phone photos of paystubs and IDs are often tilted and noisy;
straightening and thresholding them lifts Tesseract's word confidence
enough to clear the unreadable-image guard on many marginal inputs.
"""

import cv2
import numpy as np

from docintel.utils.config import PreprocessingConfig
from docintel.utils.logger import get_logger

logger = get_logger(__name__)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an RGB or RGBA image to grayscale; grayscale input passes through."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def detect_skew_angle(gray: np.ndarray) -> float:
    """Estimate document skew from the median angle of long straight lines.

    Args:
        gray: Grayscale image.

    Returns:
        Skew angle in degrees, or 0.0 when no lines are found.
    """
    edges = cv2.Canny(gray, 50, 150, apertureSize=3)
    lines = cv2.HoughLinesP(
        edges, 1, np.pi / 180, 100, minLineLength=100, maxLineGap=10
    )
    if lines is None:
        return 0.0

    angles = [
        np.degrees(np.arctan2(y2 - y1, x2 - x1)) for x1, y1, x2, y2 in lines[:, 0]
    ]
    # Vertical strokes (table borders) would otherwise dominate the median.
    angles = [angle for angle in angles if abs(angle) < 45]
    if not angles:
        return 0.0
    return float(np.median(angles))


def deskew(gray: np.ndarray, angle_threshold: float = 0.5) -> np.ndarray:
    """Rotate a grayscale image so text lines are horizontal.

    Args:
        gray: Grayscale image.
        angle_threshold: Minimum angle (degrees) worth correcting.

    Returns:
        The corrected image, or the input when skew is negligible.
    """
    angle = detect_skew_angle(gray)
    if abs(angle) < angle_threshold:
        return gray

    h, w = gray.shape[:2]
    rotation = cv2.getRotationMatrix2D((w // 2, h // 2), angle, 1.0)
    logger.debug("Applied deskew correction: %.2f degrees", angle)
    return cv2.warpAffine(
        gray,
        rotation,
        (w, h),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_REPLICATE,
    )


def prepare_for_ocr(image: np.ndarray, config: PreprocessingConfig) -> np.ndarray:
    """Apply the configured cleanup steps to a page image.

    Args:
        image: Page image as decoded from the upload.
        config: Which steps to run.

    Returns:
        A grayscale (or binary) image ready for Tesseract.
    """
    if not config.enabled:
        return image

    gray = to_grayscale(image)
    if config.denoise_enabled:
        gray = cv2.fastNlMeansDenoising(gray, None, 10, 7, 21)
    if config.deskew_enabled:
        gray = deskew(gray, config.deskew_angle_threshold)
    if config.binarize_enabled:
        gray = cv2.adaptiveThreshold(
            gray,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            11,
            2,
        )
    return gray
