import math

import pytest

from pcbmill.apertures import (
    Aperture,
    ApertureType,
    DrawPair,
    GerberError,
    LayerStyle,
    MacroPrimitive,
    Polarity,
    StepAndRepeat,
    build_aperture,
    build_apertures,
    combine_layers,
    layers_equivalent,
    merge_draws,
)
from pcbmill.shapes import make_rectangle


def unit_square(x=0.5, y=0.5):
    return make_rectangle((x, y), 1, 1)


def test_circle_aperture_area():
    shape = build_aperture(Aperture(ApertureType.CIRCLE, (1.0,)), 360)
    assert shape.area == pytest.approx(math.pi / 4, rel=1e-3)


def test_rectangle_aperture_with_hole():
    shape = build_aperture(Aperture(ApertureType.RECTANGLE, (2.0, 1.0, 0.5)), 4)
    assert shape.area == pytest.approx(2 - 0.125)


def test_rectangle_aperture_bounds():
    shape = build_aperture(Aperture(ApertureType.RECTANGLE, (2.0, 1.0)), 30)
    assert shape.bounds == pytest.approx((-1, -0.5, 1, 0.5))


def test_oval_aperture_is_wide():
    shape = build_aperture(Aperture(ApertureType.OVAL, (3.0, 1.0)), 60)
    minx, miny, maxx, maxy = shape.bounds
    assert maxx - minx == pytest.approx(3.0, abs=1e-6)
    assert maxy - miny == pytest.approx(1.0, abs=1e-2)


def test_none_aperture_skipped():
    assert build_aperture(Aperture(ApertureType.NONE), 30) is None


def test_unsimplified_macro_skipped():
    assert build_aperture(Aperture(ApertureType.MACRO), 30) is None


def test_macro_primitive_at_top_level_skipped():
    assert build_aperture(Aperture(ApertureType.MACRO_CIRCLE, (1, 1, 0, 0, 0)), 30) is None


def test_macro_line21_rotated():
    macro = (MacroPrimitive(ApertureType.MACRO_LINE21, (1, 2, 1, 0, 0, 90)),)
    shape = build_aperture(Aperture(ApertureType.MACRO, macro=macro), 30)
    assert shape.bounds == pytest.approx((-0.5, -1, 0.5, 1))


def test_macro_clear_primitive_subtracts():
    macro = (
        MacroPrimitive(ApertureType.MACRO_LINE21, (1, 2, 2, 0, 0, 0)),
        MacroPrimitive(ApertureType.MACRO_LINE21, (0, 1, 1, 0, 0, 0)),
    )
    shape = build_aperture(Aperture(ApertureType.MACRO, macro=macro), 30)
    assert shape.area == pytest.approx(3.0)


def test_macro_outline_square():
    params = (1, 4, 0, 0, 1, 0, 1, 1, 0, 1, 0, 0, 0)
    macro = (MacroPrimitive(ApertureType.MACRO_OUTLINE, params),)
    shape = build_aperture(Aperture(ApertureType.MACRO, macro=macro), 30)
    assert shape.area == pytest.approx(1.0)
    assert shape.bounds == pytest.approx((0, 0, 1, 1))


def test_macro_line22_lower_left():
    macro = (MacroPrimitive(ApertureType.MACRO_LINE22, (1, 2, 1, 0, 0, 0)),)
    shape = build_aperture(Aperture(ApertureType.MACRO, macro=macro), 30)
    assert shape.bounds == pytest.approx((0, 0, 2, 1))


def test_macro_skips_unknown_primitive():
    macro = (
        MacroPrimitive(ApertureType.CIRCLE, (1,)),
        MacroPrimitive(ApertureType.MACRO_LINE21, (1, 1, 1, 0, 0, 0)),
    )
    shape = build_aperture(Aperture(ApertureType.MACRO, macro=macro), 30)
    assert shape.area == pytest.approx(1.0)


def test_build_apertures_keeps_usable_only():
    apertures = {
        11: Aperture(ApertureType.RECTANGLE, (1.0, 1.0)),
        10: Aperture(ApertureType.NONE),
        12: None,
    }
    result = build_apertures(apertures, 30)
    assert list(result) == [11]
    assert result[11].area == pytest.approx(1.0)


def test_layers_equivalent():
    a = LayerStyle(Polarity.DARK, StepAndRepeat(1, 1, 0, 0))
    b = LayerStyle(Polarity.DARK, StepAndRepeat())
    c = LayerStyle(Polarity.CLEAR, StepAndRepeat())
    d = LayerStyle(Polarity.DARK, StepAndRepeat(2, 1, 1.0, 0))
    assert layers_equivalent(a, b)
    assert not layers_equivalent(a, c)
    assert not layers_equivalent(a, d)


def test_merge_draws_empty():
    assert merge_draws([]).shapes.is_empty


def test_merge_draws_unions_and_xors():
    first = DrawPair(unit_square(), unit_square())
    second = DrawPair(unit_square(1.0, 0.5), unit_square(1.0, 0.5))
    merged = merge_draws([first, second])
    assert merged.shapes.area == pytest.approx(1.5)
    assert merged.filled_closed_lines.area == pytest.approx(1.0)


def test_combine_dark_then_clear():
    layers = [
        (LayerStyle(Polarity.DARK), DrawPair(make_rectangle((0, 0), 2, 2))),
        (LayerStyle(Polarity.CLEAR), DrawPair(unit_square())),
    ]
    assert combine_layers(layers, "shapes", False).area == pytest.approx(3.0)


def test_combine_xor_ignores_polarity():
    layers = [
        (LayerStyle(Polarity.DARK), DrawPair(filled_closed_lines=make_rectangle((0, 0), 2, 2))),
        (LayerStyle(Polarity.DARK), DrawPair(filled_closed_lines=unit_square())),
    ]
    assert combine_layers(layers, "filled_closed_lines", True).area == pytest.approx(3.0)


def test_step_and_repeat_translates():
    style = LayerStyle(Polarity.DARK, StepAndRepeat(2, 1, 3.0, 0.0))
    result = combine_layers([(style, DrawPair(unit_square()))], "shapes", False)
    assert result.area == pytest.approx(2.0)
    assert result.bounds == pytest.approx((0, 0, 4, 1))


def test_unsupported_polarity_raises():
    layers = [(LayerStyle(Polarity.NEGATIVE), DrawPair(unit_square()))]
    with pytest.raises(GerberError):
        combine_layers(layers, "shapes", False)


def test_unknown_member_raises():
    with pytest.raises(ValueError):
        combine_layers([], "other", False)