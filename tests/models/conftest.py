import pytest
from glyph_omr.models import Glyph, GlyphBox


@pytest.fixture
def valid_box():
    return GlyphBox(x=1, y=2, w=3, h=4)


@pytest.fixture
def valid_glyph(valid_box):
    return Glyph(box=valid_box, weight=10, interline=10)
