import pytest
from pydantic import ValidationError
from glyph_omr.errors import InputError
from glyph_omr.models import Shape, SymbolDescriptor


def test_descriptor_from_external_record():
    d = SymbolDescriptor.from_mapping(
        {
            "name": "NOTEHEAD_BLACK",
            "interline": 20,
            "stem-number": 1,
            "with-ledger": True,
            "pitch-position": -3.0,
            "ref-point": {"x": 4, "y": 7},
        }
    )
    assert d.shape is Shape.NOTEHEAD_BLACK
    assert d.stem_number == 1
    assert d.with_ledger is True
    assert d.pitch_position == -3.0
    assert (d.ref_point.x, d.ref_point.y) == (4, 7)


def test_descriptor_to_mapping_uses_aliases():
    d = SymbolDescriptor(name="DOT", interline=10, stem_number=0)
    assert d.to_mapping() == {"name": "DOT", "interline": 10, "stem-number": 0}


def test_descriptor_unknown_shape():
    assert SymbolDescriptor(name="custom", interline=10).shape is None


def test_descriptor_str():
    d = SymbolDescriptor(name="BEAM", interline=10, stem_number=2)
    assert str(d) == "{SymbolDescriptor name:BEAM interline:10 stem-number:2}"


@pytest.mark.parametrize(
    "data",
    [
        {"interline": 10},
        {"name": "DOT", "interline": 0},
        {"name": "DOT", "interline": 10, "stem-number": -1},
    ],
)
def test_descriptor_invalid_record(data):
    with pytest.raises(InputError):
        SymbolDescriptor.from_mapping(data)


def test_descriptor_is_frozen():
    d = SymbolDescriptor(name="DOT", interline=10)
    with pytest.raises(ValidationError):
        d.name = "FLAT"
