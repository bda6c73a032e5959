import math

import pytest
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon

from pcbmill.shapes import (
    circular_arc,
    get_angle,
    linear_draw_rectangular_aperture,
    make_moire,
    make_oval,
    make_rectangle,
    make_regular_polygon,
    make_segment_rectangle,
    make_thermal,
    simplify_cutins,
    split_loops,
    split_rings,
)


def _exterior_points(shape):
    return [c for polygon in shape.geoms for c in polygon.exterior.coords]


def test_regular_polygon_vertices_lie_on_circle():
    center = (1.0, 2.0)
    shape = make_regular_polygon(center, 4.0, 6)
    points = _exterior_points(shape)
    assert len(set(points)) == 6
    for x, y in points:
        assert math.hypot(x - center[0], y - center[1]) == pytest.approx(2.0)


def test_regular_polygon_offset_places_first_vertex():
    shape = make_regular_polygon((0.0, 0.0), 2.0, 4, 90)
    points = _exterior_points(shape)
    assert any(x == pytest.approx(0.0, abs=1e-12) and y == pytest.approx(1.0) for x, y in points)


def test_regular_polygon_hole():
    solid = make_regular_polygon((0.0, 0.0), 4.0, 32)
    holed = make_regular_polygon((0.0, 0.0), 4.0, 32, 0, 2.0, 32)
    hole = make_regular_polygon((0.0, 0.0), 2.0, 32)
    assert not holed.contains(ShapelyPoint(0, 0))
    assert holed.area == pytest.approx(solid.area - hole.area)


def test_regular_polygon_too_few_vertices_is_empty():
    assert make_regular_polygon((0.0, 0.0), 2.0, 2).is_empty


def test_rectangle_bounds():
    shape = make_rectangle((1.0, 1.0), 4.0, 2.0)
    assert shape.bounds == pytest.approx((-1.0, 0.0, 3.0, 2.0))
    assert shape.area == pytest.approx(4.0 * 2.0)


def test_rectangle_with_hole():
    shape = make_rectangle((0.0, 0.0), 4.0, 4.0, 1.0, 16)
    assert not shape.contains(ShapelyPoint(0, 0))
    assert len(shape.geoms[0].interiors) == 1


def test_segment_rectangle_bounds():
    shape = make_segment_rectangle((0.0, 0.0), (4.0, 0.0), 2.0)
    assert shape.bounds == pytest.approx((0.0, -1.0, 4.0, 1.0))


def test_segment_rectangle_zero_length_is_empty():
    assert make_segment_rectangle((1.0, 1.0), (1.0, 1.0), 2.0).is_empty


def test_wide_and_tall_oval_bounds():
    wide = make_oval((0.0, 0.0), 4.0, 2.0, 0.0, 64)
    tall = make_oval((0.0, 0.0), 2.0, 4.0, 0.0, 64)
    assert wide.bounds == pytest.approx((-2.0, -1.0, 2.0, 1.0), abs=1e-3)
    assert tall.bounds == pytest.approx((-1.0, -2.0, 1.0, 2.0), abs=1e-3)
    assert wide.area == pytest.approx(tall.area)


def test_circle_oval_matches_regular_polygon():
    oval = make_oval((0.0, 0.0), 2.0, 2.0, 0.5, 24)
    circle = make_regular_polygon((0.0, 0.0), 2.0, 24, 0, 0.5, 24)
    assert oval.equals(circle)


def test_oval_with_hole():
    shape = make_oval((0.0, 0.0), 4.0, 2.0, 1.0, 32)
    assert not shape.contains(ShapelyPoint(0, 0))
    assert shape.contains(ShapelyPoint(1.5, 0))


def test_linear_draw_rectangular_aperture_bounds():
    shape = linear_draw_rectangular_aperture((0.0, 0.0), (3.0, 4.0), 1.0, 2.0)
    assert shape.bounds == pytest.approx((-0.5, -1.0, 3.5, 5.0))
    assert shape.contains(ShapelyPoint(1.5, 2.0))
    assert shape.convex_hull.area == pytest.approx(shape.area)


def test_linear_draw_without_area_is_empty():
    assert linear_draw_rectangular_aperture((0.0, 0.0), (1.0, 0.0), 0.0, 0.0).is_empty


def test_get_angle_directions():
    ccw = get_angle((1.0, 0.0), (0.0, 0.0), (0.0, 1.0), False)
    cw = get_angle((1.0, 0.0), (0.0, 0.0), (0.0, 1.0), True)
    assert ccw == pytest.approx(math.pi / 2)
    assert cw == pytest.approx(math.pi / 2 - 2 * math.pi)


def test_quarter_arc():
    arc = circular_arc((1.0, 0.0), (0.0, 1.0), (0.0, 0.0), 1.0, 1.0, math.pi / 2, False, 36)
    assert arc[0] == (1.0, 0.0)
    assert arc[-1] == (0.0, 1.0)
    assert len(arc) == 10
    for x, y in arc:
        assert math.hypot(x, y) == pytest.approx(1.0)


def test_full_circle_arc():
    circle_points = 12
    arc = circular_arc(
        (1.0, 0.0), (1.0, 0.0), (0.0, 0.0), 1.0, 1.0, 2 * math.pi, False, circle_points
    )
    assert len(arc) == circle_points + 1
    assert arc[0] == arc[-1]
    for x, y in arc:
        assert math.hypot(x, y) == pytest.approx(1.0)


def test_single_quadrant_arc_finds_center():
    arc = circular_arc((1.0, 0.0), (0.0, 1.0), (2.0, 0.0), 1.0, 0.5, 0.0, False, 36)
    assert arc[0] == (1.0, 0.0)
    assert arc[-1] == (0.0, 1.0)
    for x, y in arc:
        assert math.hypot(x, y) == pytest.approx(1.0)


def test_thermal_is_four_pieces():
    shape = make_thermal((0.0, 0.0), 4.0, 2.0, 0.5, 32)
    assert len(shape.geoms) == 4
    assert not shape.contains(ShapelyPoint(0, 0))
    assert not shape.contains(ShapelyPoint(1.5, 0))
    assert shape.bounds[2] <= 2.0 + 1e-9


def test_moire():
    parameters = [0.0, 0.0, 4.0, 0.2, 0.3, 3, 0.1, 5.0, 0.0]
    shape = make_moire(parameters, 32)
    assert shape.contains(ShapelyPoint(0, 0))
    minx, miny, maxx, maxy = shape.bounds
    assert maxx == pytest.approx(2.5)
    assert maxy == pytest.approx(2.5)
    assert not shape.contains(ShapelyPoint(1.65, 0.5))


def test_split_loops_without_repeats():
    line = [(0.0, 0.0), (1.0, 0.0), (2.0, 1.0)]
    assert split_loops(line) == [line]


def test_split_loops_open_line_with_loop():
    p, a, b, c, q = (-1.0, 0.0), (0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 5.0)
    assert split_loops([p, a, b, c, a, q]) == [[p, a, q], [a, b, c, a]]


def test_split_rings_figure_eight():
    a, b, c, d, e = (0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (-1.0, 0.0), (-1.0, -1.0)
    rings = split_rings([a, b, c, a, d, e, a])
    assert [a, b, c, a] in rings
    assert [a, d, e, a] in rings
    assert all(ring[0] == ring[-1] for ring in rings)


def test_simplify_cutins_keyhole():
    ring = [
        (0, 0), (0, 10), (10, 10), (10, 0), (5, 0), (5, 3), (7, 3),
        (7, 7), (3, 7), (3, 3), (5, 3), (5, 0), (0, 0),
    ]
    shape = simplify_cutins(ring)
    expected = Polygon(
        [(0, 0), (0, 10), (10, 10), (10, 0)], [[(3, 3), (7, 3), (7, 7), (3, 7)]]
    )
    assert shape.equals(expected)


def test_simplify_cutins_short_ring_is_empty():
    assert simplify_cutins([(0, 0), (1, 1), (0, 0)]).is_empty


def test_simplify_cutins_without_area_is_empty():
    assert simplify_cutins([(0, 0), (1, 0), (2, 0), (1, 0), (0, 0)]).is_empty


def test_simplify_cutins_unclosed_raises():
    with pytest.raises(ValueError):
        simplify_cutins([(0, 0), (1, 0), (1, 1), (0, 1)])