"""Trained shape model.

The model keeps, for each known shape, a Gaussian profile (mean and
standard deviation) over a small vector of scale-independent glyph
features. The grade of a glyph for a shape decreases with the distance
of its features to the shape profile:

    grade = exp(-0.5 * mean(((features - mean) / std) ** 2))

A model is immutable once built. It is either loaded from a JSON file or
trained from descriptor-annotated sample glyphs.
"""

import json
import logging
from pathlib import Path

import numpy as np
from pydantic import BaseModel, Field, ValidationError, field_validator

from glyph_omr.errors import ModelLoadError
from glyph_omr.models import Glyph, Shape, SymbolDescriptor
from glyph_omr.scale import Scale

logger = logging.getLogger(__name__)

FEATURE_NAMES = ("width", "height", "weight", "aspect", "stems")

# Floor on standard deviations, so that a single sample still trains a profile
MIN_STD = 0.05


def glyph_features(glyph: Glyph, stem_number: int | None = None) -> np.ndarray:
    """Compute the feature vector of a glyph, in interline units.

    Args:
        glyph: The glyph to describe.
        stem_number: Number of stems to use instead of the glyph's own.

    Returns:
        Array of width, height, weight, log aspect ratio and stem count.
    """
    scale = Scale(glyph.interline)
    width = max(glyph.box.w, 1)
    height = max(glyph.box.h, 1)
    stems = glyph.stem_number if stem_number is None else stem_number
    return np.array(
        [
            scale.to_interline(width),
            scale.to_interline(height),
            scale.to_square_interline(glyph.weight),
            float(np.log(width / height)),
            float(stems),
        ]
    )


class ShapeProfile(BaseModel):
    """Feature mean and standard deviation for one shape."""

    mean: list[float] = Field(..., min_length=len(FEATURE_NAMES), max_length=len(FEATURE_NAMES))
    std: list[float] = Field(..., min_length=len(FEATURE_NAMES), max_length=len(FEATURE_NAMES))

    @field_validator("std")
    @classmethod
    def std_positive(cls, value: list[float]) -> list[float]:
        if any(s <= 0 for s in value):
            raise ValueError("standard deviations must be positive")
        return value


class ModelFile(BaseModel):
    """Layout of a model file."""

    name: str = Field(..., min_length=1)
    features: list[str]
    shapes: dict[Shape, ShapeProfile] = Field(..., min_length=1)

    @field_validator("features")
    @classmethod
    def known_features(cls, value: list[str]) -> list[str]:
        if tuple(value) != FEATURE_NAMES:
            raise ValueError(f"expected features {list(FEATURE_NAMES)}, got {value}")
        return value


class ShapeModel:
    """Immutable per-shape Gaussian profiles.

    Attributes:
        name: Name of the model.
        shapes: Shapes known to the model, in declaration order.
    """

    def __init__(self, name: str, profiles: dict[Shape, ShapeProfile]):
        if Shape.NOISE in profiles:
            raise ValueError("NOISE is not a trainable shape")
        self.name = name
        self.shapes: tuple[Shape, ...] = tuple(sorted(profiles, key=lambda s: s.rank))
        self._means = np.array([profiles[s].mean for s in self.shapes], dtype=float)
        self._stds = np.array([profiles[s].std for s in self.shapes], dtype=float)
        self._means.setflags(write=False)
        self._stds.setflags(write=False)

    def grades(self, features: np.ndarray) -> np.ndarray:
        """Return the grade of the features for each shape of the model."""
        z = (features[np.newaxis, :] - self._means) / self._stds
        return np.exp(-0.5 * np.mean(z * z, axis=1))

    def profile(self, shape: Shape) -> ShapeProfile | None:
        if shape not in self.shapes:
            return None
        index = self.shapes.index(shape)
        return ShapeProfile(mean=self._means[index].tolist(), std=self._stds[index].tolist())

    @classmethod
    def load(cls, path: str | Path) -> "ShapeModel":
        """Load a model from a JSON file.

        Raises:
            ModelLoadError: If the file cannot be read or is not a valid model.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            model_file = ModelFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ModelLoadError(f"Cannot load shape model from {path}: {e}") from e

        logger.info(f"Loaded shape model {model_file.name!r} with {len(model_file.shapes)} shapes")
        return cls(model_file.name, model_file.shapes)

    def save(self, path: str | Path) -> None:
        model_file = ModelFile(
            name=self.name,
            features=list(FEATURE_NAMES),
            shapes={shape: self.profile(shape) for shape in self.shapes},
        )
        with open(path, "w", encoding="utf-8") as f:
            f.write(model_file.model_dump_json(indent=2))

    @classmethod
    def train(
        cls, samples: list[tuple[SymbolDescriptor, Glyph]], name: str = "trained"
    ) -> "ShapeModel":
        """Train profiles from descriptor-annotated sample glyphs.

        The descriptor names the shape of the sample. Its stem number, when
        present, overrides the stems attached to the sample glyph, and its
        interline overrides the glyph's.

        Raises:
            ValueError: If no sample names a trainable shape.
        """
        features_by_shape: dict[Shape, list[np.ndarray]] = {}
        for descriptor, glyph in samples:
            shape = descriptor.shape
            if shape is None or shape is Shape.NOISE:
                logger.debug(f"Skipping sample {descriptor}")
                continue
            sample = glyph.model_copy(update={"interline": descriptor.interline})
            features_by_shape.setdefault(shape, []).append(
                glyph_features(sample, descriptor.stem_number)
            )

        if not features_by_shape:
            raise ValueError("No trainable sample")

        profiles = {}
        for shape, vectors in features_by_shape.items():
            matrix = np.vstack(vectors)
            profiles[shape] = ShapeProfile(
                mean=matrix.mean(axis=0).tolist(),
                std=np.maximum(matrix.std(axis=0), MIN_STD).tolist(),
            )
        return cls(name, profiles)
