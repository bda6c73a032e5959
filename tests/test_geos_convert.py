import pytest
import shapely
from shapely import wkt

from pcbmill.geos_convert import (
    linestring_from_shapely,
    linestring_to_shapely,
    multilinestring_from_shapely,
    multilinestring_to_shapely,
    multipolygon_from_geometry,
    multipolygon_from_shapely,
    multipolygon_to_shapely,
    polygon_from_shapely,
    polygon_to_shapely,
    ring_from_shapely,
    ring_to_shapely,
)

SQUARE = [(0, 0), (0, 10), (10, 10), (10, 0), (0, 0)]


@pytest.mark.parametrize(
    "text",
    [
        "MULTIPOLYGON(((0 0,0 10,10 10,10 0,0 0),(3 3,7 3,7 7,3 7,3 3)))",
        "MULTIPOLYGON(((0 0,10 0,10 10,0 10,0 0),(3 3,3 7,7 7,7 3,3 3)))",
    ],
)
def test_polygon_with_holes_direction(text):
    normalized = shapely.normalize(wkt.loads(text))
    polygons = multipolygon_from_shapely(normalized)
    outer, inners = polygons[0]
    assert outer[1] == (0, 10)
    assert inners[0][1] == (7, 3)


def test_polygon_with_holes_direction_through_conversion():
    mpoly = [(SQUARE, [[(3, 3), (3, 7), (7, 7), (7, 3), (3, 3)]])]
    normalized = shapely.normalize(multipolygon_to_shapely(mpoly))
    outer, inners = multipolygon_from_shapely(normalized)[0]
    assert outer[1] == (0, 10)
    assert inners[0][1] == (7, 3)


def test_roundtrip_multi_linestring():
    mls = [[(0, 0), (1, 1)], [(2, 2), (3, 3)]]
    assert multilinestring_from_shapely(multilinestring_to_shapely(mls)) == mls


def test_roundtrip_linestring():
    ls = [(0, 0), (1, 1)]
    assert linestring_from_shapely(linestring_to_shapely(ls)) == ls


def test_roundtrip_polygon():
    poly = polygon_to_shapely(SQUARE, [])
    back = polygon_from_shapely(poly)
    assert polygon_to_shapely(*back).equals(poly)
    assert back[0] == SQUARE


def test_roundtrip_polygon_with_hole():
    hole = [(3, 3), (7, 3), (7, 7), (3, 7), (3, 3)]
    outer, inners = polygon_from_shapely(polygon_to_shapely(SQUARE, [hole]))
    assert outer == SQUARE
    assert inners == [hole]


def test_roundtrip_ring():
    assert ring_from_shapely(ring_to_shapely(SQUARE)) == SQUARE


def test_roundtrip_multipolygon():
    mpoly = [(SQUARE, []), ([(20, 20), (20, 30), (30, 30), (20, 20)], [])]
    assert multipolygon_from_shapely(multipolygon_to_shapely(mpoly)) == mpoly


def test_convert_multi_polygon_exception():
    with pytest.raises(TypeError):
        multipolygon_from_geometry(linestring_to_shapely([(0, 0), (1, 1)]))


def test_multipolygon_from_polygon_wraps():
    result = multipolygon_from_geometry(polygon_to_shapely(SQUARE))
    assert result == [(SQUARE, [])]


def test_multipolygon_from_multipolygon():
    mpoly = [(SQUARE, [])]
    assert multipolygon_from_geometry(multipolygon_to_shapely(mpoly)) == mpoly


def test_wrong_type_for_polygon():
    with pytest.raises(TypeError):
        polygon_from_shapely(linestring_to_shapely([(0, 0), (1, 1)]))


def test_empty_multipolygon():
    assert multipolygon_from_shapely(multipolygon_to_shapely([])) == []