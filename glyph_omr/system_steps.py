"""Concrete system steps of the recognition pipeline.

- ``LinesStep`` fills the holes of staff line filaments, staff by staff.
- ``SymbolsStep`` assigns a shape to every glyph that has none yet.
- ``PatternsStep`` runs the glyph patterns, building confirmed compounds.
"""

import logging

from glyph_omr.classifier import GlyphNetwork, ShapeEvaluator
from glyph_omr.filament import fill_cluster_holes
from glyph_omr.models import (
    ClassifierParams,
    FilamentParams,
    PatternParams,
    Shape,
    StepResult,
)
from glyph_omr.patterns import PatternsChecker
from glyph_omr.steps import SystemStep
from glyph_omr.system import Sheet, System

logger = logging.getLogger(__name__)


class LinesStep(SystemStep):
    """Fill large holes in the staff lines of each system.

    Returns, per system, the number of virtual points inserted. Parameters,
    when given, apply to every filament instead of each filament's own.
    """

    def __init__(self, params: FilamentParams | None = None):
        super().__init__("LINES", "Complete staff lines")
        self.params = params

    def do_system(self, system: System) -> int:
        return sum(fill_cluster_holes(cluster, self.params) for cluster in system.staves)

    def do_epilog(self, systems: list[System], sheet: Sheet, result: StepResult) -> None:
        logger.info(f"{sheet.log_prefix}{result.total()} virtual line point(s) inserted")


class SymbolsStep(SystemStep):
    """Assign a shape to the glyphs of each system.

    Glyphs with a manual shape or an already assigned shape are left
    alone. Returns, per system, the number of glyphs assigned a real
    (non-noise) shape.
    """

    def __init__(
        self,
        evaluator: ShapeEvaluator | None = None,
        params: ClassifierParams | None = None,
    ):
        super().__init__("SYMBOLS", "Recognize symbols")
        self.params = params if params is not None else ClassifierParams()
        self.evaluator = (
            evaluator if evaluator is not None else GlyphNetwork.get_instance(self.params)
        )

    def do_prolog(self, systems: list[System], sheet: Sheet) -> None:
        # Model must be available before any system task starts
        self.evaluator.prepare()

    def do_system(self, system: System) -> int:
        assigned = 0
        for glyph in system.glyphs:
            if glyph.manual_shape or glyph.shape is not None:
                continue

            evaluation = self.evaluator.vote(glyph, system, self.params.symbol_min_grade)
            if evaluation is None:
                continue

            glyph.assign(evaluation)
            if evaluation.shape is not Shape.NOISE:
                assigned += 1
        return assigned

    def do_epilog(self, systems: list[System], sheet: Sheet, result: StepResult) -> None:
        logger.info(
            f"{sheet.log_prefix}{result.total()} symbol(s) assigned by {self.evaluator.name}"
        )


class PatternsStep(SystemStep):
    """Run the glyph patterns on each system.

    Returns, per system, the number of modifications made, so that callers
    can decide to run dependent steps again. Pairs merged by a previous run
    are not merged again, so a second run on unchanged systems returns 0.
    """

    def __init__(
        self,
        evaluator: ShapeEvaluator | None = None,
        params: PatternParams | None = None,
    ):
        super().__init__("PATTERNS", "Refine glyphs with patterns")
        self.evaluator = evaluator if evaluator is not None else GlyphNetwork.get_instance()
        self.params = params if params is not None else PatternParams()

    def do_prolog(self, systems: list[System], sheet: Sheet) -> None:
        self.evaluator.prepare()

    def do_system(self, system: System) -> int:
        return PatternsChecker(system, self.evaluator, self.params).run_patterns()

    def do_epilog(self, systems: list[System], sheet: Sheet, result: StepResult) -> None:
        logger.info(f"{sheet.log_prefix}{result.total()} compound(s) built")
