"""Glyph patterns: heuristics that refine the glyph population of a system.

A pattern looks for a specific glyph configuration within one system and
fixes it, typically by building a compound out of adjacent glyphs and
asking the evaluator to confirm it.
"""

import logging
from abc import ABC, abstractmethod

from glyph_omr.classifier import NO_MIN_GRADE, GlyphNetwork, ShapeEvaluator
from glyph_omr.models import NO_CONDITIONS, Glyph, PatternParams, Shape
from glyph_omr.system import System

logger = logging.getLogger(__name__)


class GlyphPattern(ABC):
    """Base class for a pattern run on one system.

    Attributes:
        name: Name of the pattern, for logging.
        system: The system to process.
        evaluator: The evaluator used to confirm shapes.
        params: Pattern parameters.
    """

    def __init__(
        self,
        name: str,
        system: System,
        evaluator: ShapeEvaluator | None = None,
        params: PatternParams | None = None,
    ):
        self.name = name
        self.system = system
        self.evaluator = evaluator if evaluator is not None else GlyphNetwork.get_instance()
        self.params = params if params is not None else PatternParams()

    @abstractmethod
    def run_pattern(self) -> int:
        """Run the pattern on the system.

        Returns:
            The number of modifications made.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.system.id_string()})"


class DoubleBeamPattern(GlyphPattern):
    """Look for a BEAM_2 (or richer) compound for beams with just one stem.

    A beam seen with a single stem is often one half of a double beam
    whose two lines were segmented apart. Each candidate beam lying next
    to it is tentatively merged with it, and the first compound the
    evaluator accepts gets committed. Candidates are tried by increasing
    id, with no geometric ranking. The original beams are left in place,
    and a beam already merged with one of its candidates is skipped, so that
    running the pattern again makes no further modification.
    """

    def __init__(
        self,
        system: System,
        evaluator: ShapeEvaluator | None = None,
        params: PatternParams | None = None,
    ):
        super().__init__("DoubleBeam", system, evaluator, params)

    def run_pattern(self) -> int:
        nb = 0

        # Pairs already merged by a previous run
        merged = {
            frozenset(glyph.part_ids)
            for glyph in self.system.glyphs
            if len(glyph.part_ids) == 2
        }

        for beam in self.system.glyphs:
            if beam.shape is not Shape.BEAM or beam.manual_shape or beam.stem_number != 1:
                continue

            verbose = beam.flagged or logger.isEnabledFor(logging.DEBUG)
            if verbose:
                logger.info(f"Checking single-stem beam #{beam.id}")

            stem_id = beam.stem_ids[0]

            # Look for a beam glyph next to it
            beam_box = beam.box.grow(self.params.box_margin)
            candidates = self.system.lookup_glyphs(
                lambda glyph: glyph is not beam
                and glyph.id != stem_id
                and glyph.shape is Shape.BEAM
                and glyph.box.intersects(beam_box)
            )

            if any(frozenset((beam.id, c.id)) in merged for c in candidates):
                if verbose:
                    logger.info(f"Beam #{beam.id} already part of a compound")
                continue

            for candidate in candidates:
                if verbose or candidate.flagged:
                    logger.info(f"Beam candidate {candidate}")

                if self._try_compound(beam, candidate):
                    nb += 1
                    break

        return nb

    def _try_compound(self, beam: Glyph, candidate: Glyph) -> bool:
        compound = self.system.build_transient_compound([beam, candidate])
        evaluation = self.evaluator.vote(
            compound, self.system, NO_MIN_GRADE, conditions=NO_CONDITIONS
        )
        if evaluation is None:
            return False

        compound = self.system.add_glyph(compound)
        compound.assign(evaluation)

        if compound.flagged or logger.isEnabledFor(logging.DEBUG):
            logger.info(f"Compound #{compound.id} built as {compound.evaluation}")

        return True


class PatternsChecker:
    """Run the sequence of glyph patterns on one system.

    Attributes:
        system: The system to process.
        patterns: Patterns in the order they are run.
    """

    def __init__(
        self,
        system: System,
        evaluator: ShapeEvaluator | None = None,
        params: PatternParams | None = None,
        patterns: list[GlyphPattern] | None = None,
    ):
        self.system = system
        if patterns is None:
            patterns = [DoubleBeamPattern(system, evaluator, params)]
        self.patterns = patterns

    def run_patterns(self) -> int:
        """Run every pattern in turn.

        Returns:
            The total number of modifications made.
        """
        total = 0
        for pattern in self.patterns:
            modifs = pattern.run_pattern()
            if modifs:
                logger.debug(f"{self.system.id_string()} {pattern.name}: {modifs}")
            total += modifs
        return total
