"""Conversion between plain coordinate lists and shapely geometries.

Points are ``(x, y)`` tuples, linestrings and rings are lists of points,
a polygon is an ``(outer, inners)`` pair and a multipolygon is a list of
such pairs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from shapely.geometry import (
    LinearRing,
    LineString,
    MultiLineString,
    MultiPolygon,
    Polygon,
)
from shapely.geometry.base import BaseGeometry

Point = tuple[float, float]
Line = list[Point]
PolygonRings = tuple[Line, list[Line]]


def _points(geometry: BaseGeometry) -> Line:
    return [(float(c[0]), float(c[1])) for c in geometry.coords]


def _require(geometry: BaseGeometry, kind: type, name: str) -> None:
    if not isinstance(geometry, kind):
        raise TypeError(f"Can't convert to {name}: {geometry.wkt}")


def linestring_to_shapely(points: Iterable[Sequence[float]]) -> LineString:
    """Build a shapely LineString from a sequence of points."""
    return LineString([(p[0], p[1]) for p in points])


def ring_to_shapely(points: Iterable[Sequence[float]]) -> LinearRing:
    """Build a shapely LinearRing from a sequence of points."""
    return LinearRing([(p[0], p[1]) for p in points])


def polygon_to_shapely(
    outer: Iterable[Sequence[float]],
    inners: Iterable[Iterable[Sequence[float]]] = (),
) -> Polygon:
    """Build a shapely Polygon from an outer ring and its holes."""
    shell = [(p[0], p[1]) for p in outer]
    if not shell:
        return Polygon()
    holes = [ring_to_shapely(inner) for inner in inners]
    return Polygon(ring_to_shapely(shell), holes)


def multipolygon_to_shapely(
    polygons: Iterable[tuple[Iterable[Sequence[float]], Iterable]],
) -> MultiPolygon:
    """Build a shapely MultiPolygon from ``(outer, inners)`` pairs."""
    return MultiPolygon([polygon_to_shapely(outer, inners) for outer, inners in polygons])


def multilinestring_to_shapely(lines: Iterable[Iterable[Sequence[float]]]) -> MultiLineString:
    """Build a shapely MultiLineString from a sequence of linestrings."""
    return MultiLineString([linestring_to_shapely(line) for line in lines])


def linestring_from_shapely(geometry: BaseGeometry) -> Line:
    """Return the points of a shapely LineString."""
    _require(geometry, LineString, "linestring")
    return _points(geometry)


def ring_from_shapely(geometry: BaseGeometry) -> Line:
    """Return the points of a shapely LinearRing."""
    _require(geometry, LineString, "ring")
    return _points(geometry)


def polygon_from_shapely(geometry: BaseGeometry) -> PolygonRings:
    """Return the outer ring and holes of a shapely Polygon."""
    _require(geometry, Polygon, "polygon")
    if geometry.is_empty:
        return [], []
    return _points(geometry.exterior), [_points(ring) for ring in geometry.interiors]


def multipolygon_from_shapely(geometry: BaseGeometry) -> list[PolygonRings]:
    """Return the polygons of a shapely MultiPolygon."""
    _require(geometry, MultiPolygon, "multipolygon")
    return [polygon_from_shapely(polygon) for polygon in geometry.geoms]


def multilinestring_from_shapely(geometry: BaseGeometry) -> list[Line]:
    """Return the linestrings of a shapely MultiLineString."""
    _require(geometry, MultiLineString, "multilinestring")
    return [linestring_from_shapely(line) for line in geometry.geoms]


def multipolygon_from_geometry(geometry: BaseGeometry) -> list[PolygonRings]:
    """Convert a Polygon or MultiPolygon into a list of polygons.

    Raises TypeError for any other kind of geometry.
    """
    if isinstance(geometry, MultiPolygon):
        return multipolygon_from_shapely(geometry)
    if isinstance(geometry, Polygon):
        return [polygon_from_shapely(geometry)]
    raise TypeError(f"Can't convert to multipolygon: {geometry.wkt}")