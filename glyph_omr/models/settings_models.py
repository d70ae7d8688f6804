"""Parameter models for pipeline configuration.

This module defines Pydantic models that encapsulate all configurable
parameters of the recognition pipeline. Length thresholds are expressed
as fractions of the interline, so that they scale with the image
resolution; they are converted to pixels through ``glyph_omr.scale``.
"""

from pydantic import BaseModel, Field


class ImageProcessingParams(BaseModel):
    """Configuration parameters for image binarization.

    Attributes:
        threshold: Grayscale threshold for binarization (0-255, default 127).
    """

    threshold: int = Field(
        127, ge=0, le=255, description="Grayscale threshold for binarization"
    )


class SegmentationParams(BaseModel):
    """Configuration parameters for the extraction of raw glyphs.

    Attributes:
        min_pixels: Connected components with fewer pixels are dropped
            before any glyph gets built (default 2).
        connectivity: Pixel connectivity used for components (4 or 8).
    """

    min_pixels: int = Field(2, ge=1, description="Minimum component pixel count")
    connectivity: int = Field(8, description="Pixel connectivity (4 or 8)")


class FilamentParams(BaseModel):
    """Configuration parameters for filament hole filling.

    Attributes:
        max_hole_length: Maximum length for holes without intermediate
            points, in interline units (default 8).
        virtual_segment_length: Typical length used for virtual
            intermediate points, in interline units (default 6).
    """

    max_hole_length: float = Field(
        8.0, gt=0.0, description="Maximum hole length in interline units"
    )
    virtual_segment_length: float = Field(
        6.0, gt=0.0, description="Virtual segment length in interline units"
    )


class ClassifierParams(BaseModel):
    """Configuration parameters for shape evaluation.

    Attributes:
        model_path: Path to the trained model file, or None for the model
            shipped with the package.
        min_weight: Minimum glyph weight, in interline square units, below
            which a glyph is just noise (default 0.1).
        symbol_min_grade: Minimum grade for a symbol to be assigned by the
            symbols step (default 0.5).
    """

    model_path: str | None = Field(None, description="Trained model file")
    min_weight: float = Field(
        0.1, ge=0.0, description="Minimum normalized weight for a real glyph"
    )
    symbol_min_grade: float = Field(
        0.5, ge=0.0, le=1.0, description="Minimum grade to assign a shape"
    )


class PatternParams(BaseModel):
    """Configuration parameters for compound patterns.

    Attributes:
        box_margin: Margin in pixels added around a trigger glyph when
            looking for adjacent candidates (default 1).
    """

    box_margin: int = Field(1, ge=0, description="Lookup margin in pixels")


class SchedulerParams(BaseModel):
    """Configuration parameters for the system step scheduler.

    Attributes:
        max_workers: Size of the shared worker pool, None for the
            executor default. Only the first scheduler to use the pool
            sizes it; later values are ignored with a warning.
        poll_interval: Seconds between two checks of the cancellation
            flag while waiting on system tasks.
    """

    max_workers: int | None = Field(None, ge=1, description="Worker pool size")
    poll_interval: float = Field(
        0.1, gt=0.0, le=10.0, description="Cancellation poll interval in seconds"
    )


class ProcessingParameters(BaseModel):
    """Complete configuration for the recognition pipeline.

    Attributes:
        image: Parameters for image binarization.
        segmentation: Parameters for raw glyph extraction.
        filament: Parameters for filament hole filling.
        classifier: Parameters for shape evaluation.
        pattern: Parameters for compound patterns.
        scheduler: Parameters for parallel system processing.
    """

    image: ImageProcessingParams = Field(
        default_factory=ImageProcessingParams, description="Image processing parameters"
    )
    segmentation: SegmentationParams = Field(
        default_factory=SegmentationParams, description="Segmentation parameters"
    )
    filament: FilamentParams = Field(
        default_factory=FilamentParams, description="Filament parameters"
    )
    classifier: ClassifierParams = Field(
        default_factory=ClassifierParams, description="Classifier parameters"
    )
    pattern: PatternParams = Field(
        default_factory=PatternParams, description="Pattern parameters"
    )
    scheduler: SchedulerParams = Field(
        default_factory=SchedulerParams, description="Scheduler parameters"
    )
