"""Extraction of raw glyphs from a binary image.

Each connected component of foreground pixels becomes one glyph, with its
bounding box and its pixel count as weight. Glyphs built here are
transient: they get their ids when inserted into a system.
"""

import logging

import cv2
import numpy as np

from glyph_omr.errors import InputError
from glyph_omr.models import Glyph, GlyphBox, SegmentationParams

logger = logging.getLogger(__name__)


def extract_glyphs(
    binary: np.ndarray,
    interline: int,
    params: SegmentationParams | None = None,
) -> list[Glyph]:
    """Build one glyph per connected component of the binary image.

    Args:
        binary: Binary image as 2D uint8 array where ink is white (255)
               and background is black (0).
        interline: Interline of the image, in pixels.
        params: Segmentation parameters.

    Returns:
        Glyphs sorted by abscissa then ordinate of their bounding box.
        Components smaller than ``params.min_pixels`` are dropped.

    Raises:
        InputError: If the image is not a 2D array or the connectivity
            is neither 4 nor 8.
    """
    params = params if params is not None else SegmentationParams()
    if binary.ndim != 2:
        raise InputError(f"Expected a 2D binary image, got shape {binary.shape}")
    if params.connectivity not in (4, 8):
        raise InputError(f"Connectivity must be 4 or 8, got {params.connectivity}")

    count, _, stats, _ = cv2.connectedComponentsWithStats(
        (binary > 0).astype(np.uint8), connectivity=params.connectivity
    )

    glyphs: list[Glyph] = []

    # Label 0 is the background
    for label in range(1, count):
        x, y, w, h, area = (int(v) for v in stats[label])
        if area < params.min_pixels:
            continue
        glyphs.append(
            Glyph(box=GlyphBox(x=x, y=y, w=w, h=h), weight=area, interline=interline)
        )

    glyphs.sort(key=lambda g: (g.box.x, g.box.y))
    logger.debug(f"Extracted {len(glyphs)} glyph(s) out of {count - 1} component(s)")
    return glyphs
