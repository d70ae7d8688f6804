import numpy as np
import cv2
import pytest

from glyph_omr.classifier import GlyphNetwork, ShapeEvaluator
from glyph_omr.models import Evaluation, Glyph, GlyphBox
from glyph_omr.system import Sheet, System


class StubEvaluator(ShapeEvaluator):
    """Evaluator returning canned grades instead of querying a model."""

    def __init__(self, grades=None, judge=None, params=None):
        super().__init__("stub", params)
        self.grades = grades or {}
        self.judge = judge
        self.calls = 0

    def natural_evaluations(self, glyph):
        self.calls += 1
        if self.judge is not None:
            return self.judge(glyph)
        return [Evaluation(shape=s, grade=g) for s, g in self.grades.items()]


@pytest.fixture
def make_evaluator():
    return StubEvaluator


@pytest.fixture
def make_glyph():
    # Glyph factory, interline 10 by default
    def factory(x=0, y=0, w=20, h=20, weight=100, interline=10, **kwargs):
        return Glyph(
            box=GlyphBox(x=x, y=y, w=w, h=h), weight=weight, interline=interline, **kwargs
        )

    return factory


@pytest.fixture
def three_system_sheet():
    systems = [System(i, 10) for i in (1, 2, 3)]
    return Sheet("test", 10, systems)


@pytest.fixture
def small_rgb_image():
    # 2×2 RGB image: red, green, blue, black
    img = np.array(
        [[[255, 0, 0], [0, 255, 0]], [[0, 0, 255], [0, 0, 0]]], dtype=np.uint8
    )
    return img


@pytest.fixture
def simple_binary_blob():
    # 100×100 binary mask with one square blob at (10,10)-(30,30)
    mask = np.zeros((100, 100), dtype=np.uint8)
    cv2.rectangle(mask, (10, 10), (30, 30), 255, -1)
    return mask


@pytest.fixture(autouse=True)
def clean_network():
    """Forget the shared GlyphNetwork before and after each test."""
    GlyphNetwork.reset_instance()
    yield
    GlyphNetwork.reset_instance()
