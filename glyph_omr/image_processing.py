"""Image preprocessing functions for the recognition pipeline.

This module converts input page images into binary masks where the ink
of the musical notation is foreground.
"""

import cv2
import numpy as np


def mask_image(image: np.ndarray, threshold_value: int) -> np.ndarray:
    """Convert a page image to a binary mask using inverted thresholding.

    Converts a color image to grayscale when needed and applies inverse
    binary thresholding, so that dark ink becomes white (255) and the
    light paper background becomes black (0).

    Args:
        image: Input BGR image as a 3-channel array, or a grayscale image.
        threshold_value: Grayscale threshold value (0-255) for binarization.
                        Pixels darker than this become white in the output.

    Returns:
        Binary image as a 2D uint8 array.
    """
    if image.ndim == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image

    # Apply inverse binary threshold to make dark regions white
    _, binary = cv2.threshold(gray, threshold_value, 255, cv2.THRESH_BINARY_INV)

    return binary
