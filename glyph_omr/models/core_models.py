"""Core domain models for glyph recognition."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Shape(str, Enum):
    """Closed set of recognizable symbol categories.

    The declaration order matters: it breaks ties between evaluations
    of equal grade.
    """

    NOISE = "NOISE"
    CLUTTER = "CLUTTER"
    DOT = "DOT"
    STEM = "STEM"
    LEDGER = "LEDGER"
    BEAM = "BEAM"
    BEAM_2 = "BEAM_2"
    BEAM_3 = "BEAM_3"
    BEAM_HOOK = "BEAM_HOOK"
    NOTEHEAD_BLACK = "NOTEHEAD_BLACK"
    NOTEHEAD_VOID = "NOTEHEAD_VOID"
    WHOLE_NOTE = "WHOLE_NOTE"
    G_CLEF = "G_CLEF"
    F_CLEF = "F_CLEF"
    C_CLEF = "C_CLEF"
    SHARP = "SHARP"
    FLAT = "FLAT"
    NATURAL = "NATURAL"
    WHOLE_REST = "WHOLE_REST"
    HALF_REST = "HALF_REST"
    QUARTER_REST = "QUARTER_REST"
    EIGHTH_REST = "EIGHTH_REST"
    FLAG_1 = "FLAG_1"
    FLAG_2 = "FLAG_2"

    @property
    def rank(self) -> int:
        """Position of this shape in the declaration order."""
        return _SHAPE_RANKS[self]


_SHAPE_RANKS = {shape: index for index, shape in enumerate(Shape)}


class Condition(str, Enum):
    """Optional gates a caller may request on an evaluation query.

    Attributes:
        ALLOWED: The shape is not blacklisted for the glyph at hand.
        CHECKED: All shape-specific structural checks are passed.
    """

    ALLOWED = "ALLOWED"
    CHECKED = "CHECKED"


NO_CONDITIONS: frozenset[Condition] = frozenset()
ALL_CONDITIONS: frozenset[Condition] = frozenset(Condition)


class Evaluation(BaseModel):
    """A shape paired with the grade the evaluator gave it.

    Attributes:
        shape: The evaluated shape.
        grade: Confidence in [0, 1].
        failure: Reason given by a structural check that rejected the
            shape, or None if no check failed.
    """

    model_config = ConfigDict(frozen=True)

    shape: Shape
    grade: float = Field(..., ge=0.0, le=1.0, description="Confidence in [0, 1]")
    failure: str | None = Field(None, description="Structural check failure")

    def sort_key(self) -> tuple[float, int]:
        """Key ordering evaluations by decreasing grade, then shape order."""
        return (-self.grade, self.shape.rank)

    def __str__(self) -> str:
        text = f"{self.shape.value}({self.grade:.3f})"
        if self.failure:
            text += f" failure:{self.failure}"
        return text


class GlyphBox(BaseModel):
    """Axis-aligned integer bounding box, (0,0) at the top-left.

    Attributes:
        x: Left edge in pixels.
        y: Top edge in pixels.
        w: Width in pixels.
        h: Height in pixels.
    """

    model_config = ConfigDict(frozen=True)

    x: int = Field(..., description="Left edge position in pixels")
    y: int = Field(..., description="Top edge position in pixels")
    w: int = Field(..., ge=0, description="Width in pixels")
    h: int = Field(..., ge=0, description="Height in pixels")

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    @property
    def cx(self) -> float:
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        return self.y + self.h / 2

    def grow(self, margin: int) -> GlyphBox:
        """Return a copy inflated by ``margin`` pixels on every side."""
        return GlyphBox(
            x=self.x - margin,
            y=self.y - margin,
            w=self.w + 2 * margin,
            h=self.h + 2 * margin,
        )

    def union(self, other: GlyphBox) -> GlyphBox:
        """Return the smallest box containing both boxes."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return GlyphBox(
            x=x,
            y=y,
            w=max(self.right, other.right) - x,
            h=max(self.bottom, other.bottom) - y,
        )

    def intersects(self, other: GlyphBox) -> bool:
        """Tell whether both boxes share a non-empty area.

        Boxes that merely touch along an edge do not intersect, and an
        empty box intersects nothing.
        """
        if self.w <= 0 or self.h <= 0 or other.w <= 0 or other.h <= 0:
            return False
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom


class Glyph(BaseModel):
    """A connected cluster of foreground pixels handled as one unit.

    A glyph comes either from raw segmentation or from ``Glyph.compound``.
    It has no id until it gets committed into a system population.

    Attributes:
        id: Identifier within the owning system, None while transient.
        box: Bounding box of the pixels.
        weight: Number of foreground pixels.
        interline: Scale of the image the glyph comes from.
        shape: Assigned shape, if any.
        evaluation: Evaluation that led to the assigned shape, if any.
        manual_shape: Shape was assigned by an operator, never reclassify.
        flagged: Glyph is flagged for closer inspection (verbose logging).
        stem_ids: Ids of the stem glyphs attached to this glyph.
        forbidden_shapes: Shapes blacklisted for this very glyph.
        part_ids: Ids of the constituents, for a compound glyph.
    """

    id: int | None = Field(None, description="Id within the owning system")
    box: GlyphBox
    weight: int = Field(..., ge=0, description="Foreground pixel count")
    interline: int = Field(..., ge=1, description="Image interline in pixels")
    shape: Shape | None = None
    evaluation: Evaluation | None = None
    manual_shape: bool = False
    flagged: bool = False
    stem_ids: list[int] = Field(default_factory=list)
    forbidden_shapes: set[Shape] = Field(default_factory=set)
    part_ids: list[int] = Field(default_factory=list)

    @classmethod
    def compound(cls, parts: list[Glyph]) -> Glyph:
        """Build a transient compound out of the provided parts.

        Args:
            parts: Constituent glyphs, at least one.

        Returns:
            A new glyph with no id, whose box is the union of the parts
            boxes and whose weight is the sum of their weights.
        """
        if not parts:
            raise ValueError("A compound needs at least one part")

        box = parts[0].box
        stem_ids: list[int] = []
        for part in parts:
            box = box.union(part.box)
            for stem_id in part.stem_ids:
                if stem_id not in stem_ids:
                    stem_ids.append(stem_id)

        return cls(
            box=box,
            weight=sum(part.weight for part in parts),
            interline=parts[0].interline,
            flagged=any(part.flagged for part in parts),
            stem_ids=stem_ids,
            part_ids=[part.id for part in parts if part.id is not None],
        )

    @property
    def is_transient(self) -> bool:
        return self.id is None

    @property
    def stem_number(self) -> int:
        return len(self.stem_ids)

    def assign(self, evaluation: Evaluation) -> None:
        """Assign the evaluation, and thus its shape, to this glyph."""
        self.evaluation = evaluation
        self.shape = evaluation.shape

    def id_string(self) -> str:
        return f"#{self.id}" if self.id is not None else "#transient"

    def __str__(self) -> str:
        shape = self.shape.value if self.shape else "-"
        return f"Glyph{self.id_string()} {shape} box={self.box.x},{self.box.y},{self.box.w}x{self.box.h}"
