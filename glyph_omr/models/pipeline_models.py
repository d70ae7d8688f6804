"""Models for representing processing step outcomes.

This module contains Pydantic models that encapsulate the outcome of a
system step run over a sheet, and the overall result of the recognition
pipeline.
"""

from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class StepResult(BaseModel):
    """Outcome of one step run over a set of systems.

    A system whose processing raised an exception has no entry in
    ``results`` and is listed in ``failed`` instead.

    Attributes:
        step_name: Name of the step that was run.
        results: Value returned by the step body, per system id.
        failed: Ids of the systems whose processing failed.
    """

    step_name: str = Field(..., description="Name of the step")
    results: dict[int, Any] = Field(
        default_factory=dict, description="Per-system body results"
    )
    failed: list[int] = Field(
        default_factory=list, description="Ids of failed systems"
    )

    @property
    def succeeded(self) -> list[int]:
        return sorted(self.results)

    def total(self) -> int:
        """Sum of the integer results, typically a count of modifications."""
        return sum(value for value in self.results.values() if isinstance(value, int))


class SheetResult(BaseModel):
    """Result of processing a whole sheet image.

    Attributes:
        binary_mask: Binary mask of the image, or None if processing failed.
        glyph_count: Number of raw glyphs extracted from the image.
        steps: Outcome of each step, in execution order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    binary_mask: np.ndarray | None = Field(
        None, description="Binary mask from image processing"
    )
    glyph_count: int = Field(0, description="Number of raw glyphs")
    steps: list[StepResult] = Field(
        default_factory=list, description="Step outcomes in execution order"
    )
