"""
Pipeline processing functions for glyph recognition.

This module ties the processing stages together: binarization of the page
image, extraction of raw glyphs, partition of the glyphs into systems, and
the system steps that complete staff lines, assign shapes and build
compounds.
"""

import logging

import numpy as np

from glyph_omr.classifier import ShapeEvaluator
from glyph_omr.errors import InputError, ModelLoadError, StepCancelledError
from glyph_omr.image_processing import mask_image
from glyph_omr.models import (
    ImageProcessingParams,
    ProcessingParameters,
    SegmentationParams,
    SheetResult,
    StepResult,
)
from glyph_omr.segmentation import extract_glyphs
from glyph_omr.steps import StepScheduler
from glyph_omr.system import Sheet, partition_glyphs
from glyph_omr.system_steps import LinesStep, PatternsStep, SymbolsStep

logger = logging.getLogger(__name__)


def process_binary_image(image, params: ImageProcessingParams) -> np.ndarray | None:
    """Convert a page image to a binary mask.

    Args:
        image: BGR or grayscale image as a NumPy array
        params: Image processing parameters

    Returns:
        The binary mask, or None if no image was provided or processing failed
    """
    try:
        if image is None:
            logger.warning("No image provided for processing")
            return None

        return mask_image(image, params.threshold)
    except Exception as e:
        logger.error(f"Error in binary image processing: {str(e)}")
        return None


def build_sheet(
    binary: np.ndarray,
    interline: int,
    bands: list[tuple[int, int]] | None = None,
    params: SegmentationParams | None = None,
    name: str = "sheet",
) -> Sheet:
    """Build a sheet out of a binary image.

    Args:
        binary: Binary mask of the page
        interline: Interline of the page, in pixels
        bands: Vertical (top, bottom) limits of each system, None for a
            single system covering the whole page
        params: Segmentation parameters
        name: Sheet name

    Returns:
        The sheet, with each system populated with its raw glyphs
    """
    if interline <= 0:
        raise InputError(f"Interline must be positive, got {interline}")

    height, width = binary.shape[:2]
    if not bands:
        bands = [(0, height)]

    glyphs = extract_glyphs(binary, interline, params)
    systems = partition_glyphs(glyphs, interline, bands, width=width)
    return Sheet(name, interline, systems)


def refine_sheet(
    sheet: Sheet,
    params: ProcessingParameters | None = None,
    evaluator: ShapeEvaluator | None = None,
    scheduler: StepScheduler | None = None,
) -> list[StepResult]:
    """Run the system steps on every system of the sheet.

    Args:
        sheet: The sheet to process
        params: Processing parameters
        evaluator: Shape evaluator, the shared GlyphNetwork if None
        scheduler: Step scheduler, a new one if None

    Returns:
        The outcome of each step, in execution order

    Raises:
        StepCancelledError: If a step got interrupted
        ModelLoadError: If the shape model cannot be loaded
    """
    params = params if params is not None else ProcessingParameters()
    scheduler = scheduler if scheduler is not None else StepScheduler(params.scheduler)

    steps = [
        LinesStep(params.filament),
        SymbolsStep(evaluator, params.classifier),
        PatternsStep(evaluator, params.pattern),
    ]

    results = []
    for step in steps:
        results.append(scheduler.run(step, None, sheet))
    return results


def process_sheet(
    image,
    interline: int,
    bands: list[tuple[int, int]] | None = None,
    params: ProcessingParameters | None = None,
    evaluator: ShapeEvaluator | None = None,
    scheduler: StepScheduler | None = None,
    name: str = "sheet",
) -> tuple[Sheet | None, SheetResult]:
    """Process the complete recognition pipeline on a page image.

    Args:
        image: Input BGR or grayscale image
        interline: Interline of the page, in pixels
        bands: Vertical (top, bottom) limits of each system
        params: Processing parameters
        evaluator: Shape evaluator, the shared GlyphNetwork if None
        scheduler: Step scheduler, a new one if None
        name: Sheet name

    Returns:
        Tuple of (sheet, sheet_result); the sheet is None when processing failed

    Raises:
        StepCancelledError: If a step got interrupted
        ModelLoadError: If the shape model cannot be loaded
    """
    params = params if params is not None else ProcessingParameters()
    try:
        if image is None:
            logger.warning("No image provided for pipeline processing")
            return None, SheetResult()

        # Step 1: Image processing
        binary = process_binary_image(image, params.image)
        if binary is None:
            return None, SheetResult()

        # Step 2: Glyph extraction and partition into systems
        sheet = build_sheet(binary, interline, bands, params.segmentation, name)
        glyph_count = sum(len(system) for system in sheet.systems)

        # Step 3: System steps
        steps = refine_sheet(sheet, params, evaluator, scheduler)

        return sheet, SheetResult(binary_mask=binary, glyph_count=glyph_count, steps=steps)

    except (StepCancelledError, ModelLoadError):
        raise
    except Exception as e:
        logger.error(f"Error in pipeline processing: {str(e)}")
        # Return empty results on error
        return None, SheetResult()
