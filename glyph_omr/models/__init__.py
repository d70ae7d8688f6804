"""Domain models for the glyph recognition package.

This module provides a centralized location for the data models used
throughout the recognition pipeline:

- Core domain models (Shape, Evaluation, GlyphBox, Glyph)
- Training descriptors (SymbolDescriptor)
- Step and pipeline results (StepResult, SheetResult)
- Configuration parameters for each processing stage

All models are built using Pydantic for data validation.
"""

# Re-export core models
from glyph_omr.models.core_models import (
    ALL_CONDITIONS,
    NO_CONDITIONS,
    Condition,
    Evaluation,
    Glyph,
    GlyphBox,
    Shape,
)

# Re-export descriptor models
from glyph_omr.models.descriptor_models import RefPoint, SymbolDescriptor

# Re-export pipeline models
from glyph_omr.models.pipeline_models import SheetResult, StepResult

# Re-export setting models
from glyph_omr.models.settings_models import (
    ClassifierParams,
    FilamentParams,
    ImageProcessingParams,
    PatternParams,
    ProcessingParameters,
    SchedulerParams,
    SegmentationParams,
)

__all__ = [
    "ALL_CONDITIONS",
    "NO_CONDITIONS",
    "Condition",
    "Evaluation",
    "Glyph",
    "GlyphBox",
    "Shape",
    "RefPoint",
    "SymbolDescriptor",
    "SheetResult",
    "StepResult",
    "ClassifierParams",
    "FilamentParams",
    "ImageProcessingParams",
    "PatternParams",
    "ProcessingParameters",
    "SchedulerParams",
    "SegmentationParams",
]
