import logging

import pytest

from glyph_omr.classifier import GlyphNetwork
from glyph_omr.errors import ModelLoadError
from glyph_omr.filament import Filament
from glyph_omr.models import (
    ClassifierParams,
    Evaluation,
    FilamentParams,
    ProcessingParameters,
    Shape,
)
from glyph_omr.pipeline import refine_sheet
from glyph_omr.steps import StepScheduler
from glyph_omr.system import Sheet, System
from glyph_omr.system_steps import LinesStep, PatternsStep, SymbolsStep

PARAMS = FilamentParams(max_hole_length=2.0, virtual_segment_length=1.0)


def staff():
    xs = range(0, 60, 10)
    return [
        Filament([(x, 100) for x in xs], 10, 1, params=PARAMS),
        Filament([(0, 118), (50, 122)], 10, 2, params=PARAMS),
        Filament([(x, 140) for x in xs], 10, 3, params=PARAMS),
    ]


def test_lines_step_fills_staff_holes(caplog):
    systems = [System(1, 10, staves=[staff()]), System(2, 10)]
    sheet = Sheet("lines", 10, systems)

    with caplog.at_level(logging.INFO, logger="glyph_omr.system_steps"):
        result = StepScheduler().run(LinesStep(), None, sheet)

    assert result.results == {1: 4, 2: 0}
    assert len(systems[0].staves[0][1]) == 6
    assert "4 virtual line point(s) inserted" in caplog.text


def test_lines_step_params_apply_to_every_filament():
    system = System(1, 10, staves=[staff()])
    sheet = Sheet("lines", 10, [system])
    step = LinesStep(FilamentParams(max_hole_length=10.0))

    result = StepScheduler().run(step, None, sheet)

    assert result.results == {1: 0}
    assert len(system.staves[0][1]) == 2


def test_refine_sheet_uses_filament_params(make_evaluator):
    # 200 pixel hole, filled under the default limits
    hole = Filament([(0, 100), (200, 100)], 10, 1)
    system = System(1, 10, staves=[[hole]])
    sheet = Sheet("refine", 10, [system])
    params = ProcessingParameters(filament=FilamentParams(max_hole_length=100.0))

    lines = refine_sheet(sheet, params, make_evaluator())[0]

    assert lines.step_name == "LINES"
    assert lines.results == {1: 0}
    assert len(hole) == 2


def test_symbols_step_assigns_shapes(make_glyph, make_evaluator):
    system = System(1, 10)
    plain = system.add_glyph(make_glyph())
    tiny = system.add_glyph(make_glyph(w=2, h=2, weight=3))
    manual = system.add_glyph(make_glyph(shape=Shape.SHARP, manual_shape=True))
    known = system.add_glyph(make_glyph(shape=Shape.FLAT))
    sheet = Sheet("symbols", 10, [system])

    evaluator = make_evaluator({Shape.WHOLE_REST: 0.8, Shape.DOT: 0.9})
    result = StepScheduler().run(SymbolsStep(evaluator), None, sheet)

    # DOT fails its size check, noise is not counted
    assert result.results == {1: 1}
    assert plain.shape is Shape.WHOLE_REST
    assert plain.evaluation == Evaluation(shape=Shape.WHOLE_REST, grade=0.8)
    assert tiny.shape is Shape.NOISE
    assert manual.shape is Shape.SHARP
    assert known.shape is Shape.FLAT


def test_symbols_step_below_min_grade(make_glyph, make_evaluator):
    system = System(1, 10)
    glyph = system.add_glyph(make_glyph())
    evaluator = make_evaluator({Shape.WHOLE_REST: 0.4})
    step = SymbolsStep(evaluator, ClassifierParams(symbol_min_grade=0.5))

    assert step.do_system(system) == 0
    assert glyph.shape is None


def test_symbols_step_model_failure_is_fatal(tmp_path, make_glyph):
    system = System(1, 10)
    system.add_glyph(make_glyph())
    sheet = Sheet("broken", 10, [system])
    network = GlyphNetwork(ClassifierParams(model_path=str(tmp_path / "none.json")))
    step = SymbolsStep(network)

    with pytest.raises(ModelLoadError):
        StepScheduler().run(step, None, sheet)
    assert system.glyphs[0].shape is None


def test_symbols_step_uses_shared_network():
    assert SymbolsStep().evaluator is GlyphNetwork.get_instance()


def test_patterns_step_builds_compounds(make_glyph, make_evaluator):
    system = System(1, 10)
    system.add_glyph(make_glyph(x=30, y=0, w=2, h=40, shape=Shape.STEM))
    system.add_glyph(make_glyph(x=0, y=30, w=30, h=6, shape=Shape.BEAM, stem_ids=[1]))
    system.add_glyph(make_glyph(x=0, y=36, w=30, h=6, shape=Shape.BEAM))
    sheet = Sheet("patterns", 10, [system, System(2, 10)])

    evaluator = make_evaluator({Shape.BEAM_2: 0.7})
    result = StepScheduler().run(PatternsStep(evaluator), None, sheet)

    assert result.results == {1: 1, 2: 0}
    assert system.get_glyph(4).shape is Shape.BEAM_2
