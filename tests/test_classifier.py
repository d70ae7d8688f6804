import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from glyph_omr.classifier import GlyphNetwork
from glyph_omr.errors import ModelLoadError
from glyph_omr.models import (
    ALL_CONDITIONS,
    NO_CONDITIONS,
    ClassifierParams,
    Condition,
    Evaluation,
    Shape,
)
from glyph_omr.shape_model import ShapeModel, ShapeProfile

# Listed out of order on purpose
GRADES = {
    Shape.STEM: 0.3,
    Shape.BEAM_2: 0.9,
    Shape.DOT: 0.95,
    Shape.BEAM: 0.9,
}


@pytest.fixture
def evaluator(make_evaluator):
    return make_evaluator(GRADES)


@pytest.fixture
def glyph(make_glyph):
    # 2x2 interlines: too large for a DOT, wide enough for a beam
    return make_glyph(w=20, h=20, weight=100)


def shapes(evaluations):
    return [e.shape for e in evaluations]


def test_evaluate_sorted_with_ties_by_declaration_order(evaluator, glyph):
    result = evaluator.evaluate(glyph, None, 10, 0.5)
    assert shapes(result) == [Shape.DOT, Shape.BEAM, Shape.BEAM_2]


def test_evaluate_respects_count(evaluator, glyph):
    result = evaluator.evaluate(glyph, None, 2, 0.0)
    assert shapes(result) == [Shape.DOT, Shape.BEAM]


def test_evaluate_zero_count(evaluator, glyph):
    assert evaluator.evaluate(glyph, None, 0, 0.0) == []


def test_evaluate_empty_when_nothing_qualifies(evaluator, glyph):
    assert evaluator.evaluate(glyph, None, 5, 0.99) == []


def test_evaluate_predicate(evaluator, glyph):
    result = evaluator.evaluate(
        glyph, None, 10, 0.0, NO_CONDITIONS, lambda s: s is not Shape.DOT
    )
    assert shapes(result) == [Shape.BEAM, Shape.BEAM_2, Shape.STEM]


def test_allowed_excludes_forbidden_shapes(evaluator, glyph):
    glyph.forbidden_shapes.add(Shape.DOT)
    assert Shape.DOT in shapes(evaluator.evaluate(glyph, None, 10, 0.5))
    allowed = evaluator.evaluate(glyph, None, 10, 0.5, {Condition.ALLOWED})
    assert Shape.DOT not in shapes(allowed)


def test_checked_excludes_failing_shapes(evaluator, glyph):
    result = evaluator.evaluate(glyph, None, 10, 0.5, {Condition.CHECKED})
    assert shapes(result) == [Shape.BEAM, Shape.BEAM_2]
    assert all(e.failure is None for e in result)


@pytest.mark.parametrize("min_grade", [0.0, 0.3, 0.5, 0.9, 0.95])
@pytest.mark.parametrize("conditions", [NO_CONDITIONS, {Condition.ALLOWED}, ALL_CONDITIONS])
def test_evaluate_contract(evaluator, glyph, min_grade, conditions):
    glyph.forbidden_shapes.add(Shape.BEAM_2)
    result = evaluator.evaluate(glyph, None, 3, min_grade, conditions)
    assert len(result) <= 3
    assert all(e.grade >= min_grade for e in result)
    grades = [e.grade for e in result]
    assert grades == sorted(grades, reverse=True)
    if Condition.ALLOWED in conditions:
        assert Shape.BEAM_2 not in shapes(result)
    if Condition.CHECKED in conditions:
        assert Shape.DOT not in shapes(result)


@pytest.mark.parametrize("min_grade", [0.0, 0.5, 0.92, 0.99])
@pytest.mark.parametrize("conditions", [NO_CONDITIONS, {Condition.ALLOWED}, ALL_CONDITIONS])
def test_vote_none_iff_evaluate_empty(evaluator, glyph, min_grade, conditions):
    vote = evaluator.vote(glyph, None, min_grade, conditions)
    evaluations = evaluator.evaluate(glyph, None, 1, min_grade, conditions)
    assert (vote is None) == (evaluations == [])
    if vote is not None:
        assert vote == evaluations[0]


def test_vote_defaults_to_allowed_and_checked(evaluator, glyph):
    # DOT fails its structural check, so BEAM wins
    assert evaluator.vote(glyph, None, 0.5).shape is Shape.BEAM
    assert evaluator.vote(glyph, None, 0.5, NO_CONDITIONS).shape is Shape.DOT


def test_raw_vote_skips_structural_checks(evaluator, glyph):
    assert evaluator.raw_vote(glyph, 0.5).shape is Shape.DOT


def test_raw_vote_honors_allowed_and_predicate(evaluator, glyph):
    glyph.forbidden_shapes.add(Shape.DOT)
    assert evaluator.raw_vote(glyph, 0.5).shape is Shape.BEAM
    assert evaluator.raw_vote(glyph, 0.5, lambda s: s is Shape.STEM) is None


def test_small_glyph_is_noise_without_model(evaluator, make_glyph):
    tiny = make_glyph(w=3, h=3, weight=5)
    assert not evaluator.is_big_enough(tiny)
    assert evaluator.evaluate(tiny, None, 3, 0.0) == [Evaluation(shape=Shape.NOISE, grade=1.0)]
    assert evaluator.calls == 0


def test_is_big_enough_threshold(make_evaluator, make_glyph):
    evaluator = make_evaluator(GRADES, params=ClassifierParams(min_weight=0.5))
    assert evaluator.is_big_enough(make_glyph(weight=50))
    assert not evaluator.is_big_enough(make_glyph(weight=49))


def test_evaluator_name(evaluator):
    assert evaluator.name == "stub"
    assert evaluator.get_name() == "stub"


# GlyphNetwork


def test_network_loads_model_lazily(tmp_path, make_glyph):
    network = GlyphNetwork(ClassifierParams(model_path=str(tmp_path / "missing.json")))
    assert not network.is_loaded
    with pytest.raises(ModelLoadError):
        network.vote(make_glyph(), None, 0.0)


def test_network_rejects_corrupt_model(tmp_path, make_glyph):
    path = tmp_path / "model.json"
    path.write_text("{not json")
    network = GlyphNetwork(ClassifierParams(model_path=str(path)))
    with pytest.raises(ModelLoadError):
        network.evaluate(make_glyph(), None, 1, 0.0)


def test_network_rejects_invalid_profiles(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(
        json.dumps(
            {
                "name": "bad",
                "features": ["width", "height", "weight", "aspect", "stems"],
                "shapes": {"DOT": {"mean": [0, 0, 0, 0, 0], "std": [0, 1, 1, 1, 1]}},
            }
        )
    )
    network = GlyphNetwork(ClassifierParams(model_path=str(path)))
    with pytest.raises(ModelLoadError):
        network.prepare()


def test_network_default_model_recognizes_notehead(make_glyph):
    network = GlyphNetwork()
    head = make_glyph(w=13, h=10, weight=100, stem_ids=[7])
    vote = network.vote(head, None, 0.5)
    assert vote.shape is Shape.NOTEHEAD_BLACK
    assert vote.grade == pytest.approx(1.0, abs=1e-3)
    assert network.is_loaded


def test_network_model_loaded_once_under_concurrency(monkeypatch):
    loads = []
    lock = threading.Lock()

    def fake_load(path):
        time.sleep(0.05)
        with lock:
            loads.append(path)
        profile = ShapeProfile(mean=[1, 1, 1, 0, 0], std=[1, 1, 1, 1, 1])
        return ShapeModel("fake", {Shape.DOT: profile})

    monkeypatch.setattr(ShapeModel, "load", staticmethod(fake_load))
    network = GlyphNetwork()

    with ThreadPoolExecutor(max_workers=8) as pool:
        models = list(pool.map(lambda _: network.model, range(8)))

    assert len(loads) == 1
    assert all(model is models[0] for model in models)


def test_get_instance_is_shared():
    first = GlyphNetwork.get_instance()
    assert GlyphNetwork.get_instance() is first
    GlyphNetwork.reset_instance()
    assert GlyphNetwork.get_instance() is not first
