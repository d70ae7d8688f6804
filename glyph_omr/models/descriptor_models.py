"""Training descriptor records.

A descriptor brings additional information to a mere shaped training
sample: the number of stems it is connected to, whether it sits on a
ledger, its pitch position within the staff lines and a reference point.
Several descriptors may share the same name, which allows different
values for the same shape (for example a stem number of 1 or 2 for
``NOTEHEAD_BLACK``).

Field names follow the external record layout (``stem-number``,
``with-ledger``, ``pitch-position``, ``ref-point``); they are exposed
under snake_case names on the Python side.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from glyph_omr.errors import InputError
from glyph_omr.models.core_models import Shape


class RefPoint(BaseModel):
    """Integer reference point of a symbol."""

    x: int
    y: int


class SymbolDescriptor(BaseModel):
    """Descriptor of one training symbol.

    Attributes:
        name: Related name, generally the name of a Shape.
        interline: Interline value of the related image.
        stem_number: How many stems the symbol is connected to.
        with_ledger: Whether the symbol is connected to a ledger.
        pitch_position: Pitch position within the staff lines.
        ref_point: Reference point, if any.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, description="Symbol name")
    interline: int = Field(..., ge=1, description="Image interline in pixels")
    stem_number: int | None = Field(None, ge=0, alias="stem-number")
    with_ledger: bool | None = Field(None, alias="with-ledger")
    pitch_position: float | None = Field(None, alias="pitch-position")
    ref_point: RefPoint | None = Field(None, alias="ref-point")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SymbolDescriptor":
        """Build a descriptor out of a parsed record.

        Raises:
            InputError: If the record does not match the descriptor layout.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InputError(f"Invalid symbol descriptor: {e}") from e

    @property
    def shape(self) -> Shape | None:
        """The Shape this descriptor names, or None if it names no shape."""
        try:
            return Shape(self.name)
        except ValueError:
            return None

    def to_mapping(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def __str__(self) -> str:
        parts = [self.__class__.__name__, f"name:{self.name}"]
        parts.append(f"interline:{self.interline}")
        if self.stem_number is not None:
            parts.append(f"stem-number:{self.stem_number}")
        if self.with_ledger is not None:
            parts.append(f"with-ledger:{self.with_ledger}")
        if self.pitch_position is not None:
            parts.append(f"pitch-position:{self.pitch_position}")
        return "{" + " ".join(parts) + "}"
