"""Systems and sheets: the spatial partition of a page.

A system is an independent region of the page. It owns its population of
glyphs and is the unit of parallel processing: a system is never modified
by more than one worker at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from glyph_omr.models import Glyph, GlyphBox
from glyph_omr.scale import Scale

if TYPE_CHECKING:
    from glyph_omr.filament import Filament

logger = logging.getLogger(__name__)


class System:
    """One system of a sheet, with its glyph population.

    Glyph ids are assigned on first insertion, from a counter that only
    grows, so an id is never reused within the system even after a glyph
    removal.

    Attributes:
        id: System number within the sheet.
        interline: Interline of the sheet image, in pixels.
        area: Region of the page covered by the system, if known.
        staves: Clusters of roughly parallel staff line filaments, each
            cluster ordered by cluster position.
    """

    def __init__(
        self,
        system_id: int,
        interline: int,
        area: GlyphBox | None = None,
        staves: list[list[Filament]] | None = None,
    ):
        self.id = system_id
        self.interline = interline
        self.scale = Scale(interline)
        self.area = area
        self.staves: list[list[Filament]] = staves if staves is not None else []
        self._glyphs: dict[int, Glyph] = {}
        self._next_id = 1

    def id_string(self) -> str:
        return f"S{self.id}"

    @property
    def glyphs(self) -> list[Glyph]:
        """The committed glyphs, by increasing id."""
        return [self._glyphs[glyph_id] for glyph_id in sorted(self._glyphs)]

    def __len__(self) -> int:
        return len(self._glyphs)

    def get_glyph(self, glyph_id: int) -> Glyph | None:
        return self._glyphs.get(glyph_id)

    def add_glyph(self, glyph: Glyph) -> Glyph:
        """Commit a glyph into the population of this system.

        A transient glyph receives the next free id. A glyph that already
        has an id keeps it, and the id counter moves past it. Inserting a
        glyph already in the population again is a no-op.

        Args:
            glyph: The glyph to insert.

        Returns:
            The inserted glyph.

        Raises:
            ValueError: If another glyph uses or once used the same id.
        """
        if glyph.id is None:
            glyph.id = self._next_id
        else:
            existing = self._glyphs.get(glyph.id)
            if existing is not None and existing is not glyph:
                raise ValueError(
                    f"Glyph id {glyph.id} already used in system {self.id_string()}"
                )
            if existing is None and glyph.id < self._next_id:
                raise ValueError(
                    f"Glyph id {glyph.id} already given out in system {self.id_string()}"
                )

        self._next_id = max(self._next_id, glyph.id + 1)
        self._glyphs[glyph.id] = glyph
        logger.debug(f"{self.id_string()} added {glyph}")
        return glyph

    def add_glyphs(self, glyphs: Iterable[Glyph]) -> list[Glyph]:
        return [self.add_glyph(glyph) for glyph in glyphs]

    def remove_glyph(self, glyph: Glyph) -> None:
        """Remove a committed glyph; its id is not given out again."""
        if glyph.id is not None and self._glyphs.get(glyph.id) is glyph:
            del self._glyphs[glyph.id]

    def build_transient_compound(self, parts: list[Glyph]) -> Glyph:
        """Build a compound glyph out of the parts, without committing it."""
        return Glyph.compound(parts)

    def lookup_glyphs(self, predicate: Callable[[Glyph], bool]) -> list[Glyph]:
        """Return the committed glyphs that match the predicate, by increasing id."""
        return [glyph for glyph in self.glyphs if predicate(glyph)]

    def __repr__(self) -> str:
        return f"System({self.id_string()}, glyphs={len(self._glyphs)})"


class Sheet:
    """A whole page, made of independent systems.

    Attributes:
        name: Name of the sheet, used as logging prefix.
        interline: Interline of the sheet image, in pixels.
        systems: The systems, top to bottom.
    """

    def __init__(self, name: str, interline: int, systems: list[System] | None = None):
        self.name = name
        self.interline = interline
        self.scale = Scale(interline)
        self.systems: list[System] = systems if systems is not None else []

    @property
    def log_prefix(self) -> str:
        return f"[{self.name}] "

    def get_system(self, system_id: int) -> System | None:
        for system in self.systems:
            if system.id == system_id:
                return system
        return None

    def __repr__(self) -> str:
        return f"Sheet({self.name!r}, systems={len(self.systems)})"


def partition_glyphs(
    glyphs: list[Glyph],
    interline: int,
    bands: list[tuple[int, int]],
    width: int | None = None,
) -> list[System]:
    """Distribute glyphs into systems according to vertical bands.

    Each band (top, bottom) defines one system. A glyph goes to the band
    that contains its vertical center; glyphs outside every band are
    dropped.

    Args:
        glyphs: Raw glyphs, not yet committed.
        interline: Interline of the image, in pixels.
        bands: Vertical (top, bottom) limits of each system.
        width: Image width, used to define the system areas.

    Returns:
        One System per band, numbered from 1, populated with its glyphs.
    """
    systems: list[System] = []
    for index, (top, bottom) in enumerate(bands, start=1):
        area = None
        if width is not None:
            area = GlyphBox(x=0, y=top, w=width, h=bottom - top)
        systems.append(System(index, interline, area=area))

    dropped = 0
    for glyph in glyphs:
        for system, (top, bottom) in zip(systems, bands):
            if top <= glyph.box.cy < bottom:
                system.add_glyph(glyph)
                break
        else:
            dropped += 1

    if dropped:
        logger.debug(f"{dropped} glyph(s) outside any system band")

    return systems
