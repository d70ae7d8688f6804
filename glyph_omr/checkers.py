"""Shape-specific structural checks.

These checks implement the CHECKED condition of an evaluation query. A
check looks at a glyph candidate for a given shape and returns a short
failure reason when the glyph structure contradicts the shape, or None
when nothing is wrong.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Optional

from glyph_omr.models import Evaluation, Glyph, Shape
from glyph_omr.scale import Scale
from glyph_omr.system import System

logger = logging.getLogger(__name__)

Check = Callable[[Optional[System], Glyph, Evaluation], Optional[str]]

BEAMS = (Shape.BEAM, Shape.BEAM_2, Shape.BEAM_3)
NOTEHEADS = (Shape.NOTEHEAD_BLACK, Shape.NOTEHEAD_VOID)
CLEFS = (Shape.G_CLEF, Shape.F_CLEF, Shape.C_CLEF)
FLAGS = (Shape.FLAG_1, Shape.FLAG_2)


class ShapeChecker:
    """Registry of structural checks, per shape.

    Generic checks apply to every shape, specific checks only to the
    shapes they are registered for. Checks run in registration order and
    the first failure wins.
    """

    def __init__(self):
        self._generic: list[Check] = []
        self._specific: dict[Shape, list[Check]] = {}

    def register(self, check: Check, shapes: Iterable[Shape] | None = None) -> None:
        """Register a check for the given shapes, or for all shapes if None."""
        if shapes is None:
            self._generic.append(check)
        else:
            for shape in shapes:
                self._specific.setdefault(shape, []).append(check)

    def check(
        self, system: System | None, glyph: Glyph, evaluation: Evaluation
    ) -> str | None:
        """Run the checks relevant for the evaluated shape.

        Returns:
            The failure reason of the first failing check, or None.
        """
        for check in [*self._generic, *self._specific.get(evaluation.shape, [])]:
            failure = check(system, glyph, evaluation)
            if failure:
                return failure
        return None

    def annotate(
        self, system: System | None, glyph: Glyph, evaluation: Evaluation
    ) -> Evaluation:
        """Return the evaluation, carrying the failure reason if a check failed."""
        failure = self.check(system, glyph, evaluation)
        if failure is None:
            return evaluation
        if glyph.flagged:
            logger.info(f"{glyph} failed {evaluation.shape.value}: {failure}")
        return evaluation.model_copy(update={"failure": failure})


def _size(glyph: Glyph) -> tuple[float, float]:
    scale = Scale(glyph.interline)
    return scale.to_interline(glyph.box.w), scale.to_interline(glyph.box.h)


def check_in_system(system, glyph, evaluation):
    if system is None or system.area is None:
        return None
    if not system.area.contains_point(glyph.box.cx, glyph.box.cy):
        return "outside system"
    return None


def check_stem(system, glyph, evaluation):
    width, height = _size(glyph)
    if width > 0.5:
        return "too wide"
    if height < 1.5:
        return "too short"
    return None


def check_beam(system, glyph, evaluation):
    width, _ = _size(glyph)
    if width < 1.0:
        return "too narrow"
    return None


def check_beam_hook(system, glyph, evaluation):
    if glyph.stem_number != 1:
        return "hook needs exactly one stem"
    return None


def check_notehead(system, glyph, evaluation):
    if glyph.stem_number > 2:
        return "too many stems"
    return None


def check_whole_note(system, glyph, evaluation):
    if glyph.stem_number > 0:
        return "stem on whole note"
    return None


def check_flag(system, glyph, evaluation):
    if glyph.stem_number == 0:
        return "no stem"
    return None


def check_clef(system, glyph, evaluation):
    _, height = _size(glyph)
    if height < 2.0:
        return "too short"
    return None


def check_dot(system, glyph, evaluation):
    width, height = _size(glyph)
    if max(width, height) > 0.8:
        return "too large"
    return None


def default_checker() -> ShapeChecker:
    """Build the checker with the standard set of structural checks."""
    checker = ShapeChecker()
    checker.register(check_in_system)
    checker.register(check_stem, [Shape.STEM])
    checker.register(check_beam, BEAMS)
    checker.register(check_beam_hook, [Shape.BEAM_HOOK])
    checker.register(check_notehead, NOTEHEADS)
    checker.register(check_whole_note, [Shape.WHOLE_NOTE])
    checker.register(check_flag, FLAGS)
    checker.register(check_clef, CLEFS)
    checker.register(check_dot, [Shape.DOT])
    return checker
