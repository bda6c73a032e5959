"""Geometric primitives used when rendering Gerber apertures and draws.

Points are ``(x, y)`` tuples and linestrings are lists of points.  Filled
shapes are returned as shapely ``MultiPolygon`` objects.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from shapely.geometry import LineString, MultiPoint, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

Point = tuple[float, float]
Line = list[Point]


def _point(p: Sequence[float]) -> Point:
    return (float(p[0]), float(p[1]))


def _as_multipolygon(geometry: BaseGeometry) -> MultiPolygon:
    """Keep only the areal parts of a geometry, as a MultiPolygon."""
    if geometry.is_empty:
        return MultiPolygon()
    if isinstance(geometry, MultiPolygon):
        return geometry
    if isinstance(geometry, Polygon):
        return MultiPolygon([geometry])
    if hasattr(geometry, "geoms"):
        polygons = [
            polygon
            for part in geometry.geoms
            for polygon in _as_multipolygon(part).geoms
        ]
        return MultiPolygon(polygons)
    return MultiPolygon()


def _difference(shape: BaseGeometry, hole: BaseGeometry) -> MultiPolygon:
    return _as_multipolygon(shape.difference(hole))


def _union(parts: Iterable[BaseGeometry]) -> MultiPolygon:
    return _as_multipolygon(unary_union(list(parts)))


def _from_polygon(polygon: Polygon) -> MultiPolygon:
    if polygon.is_empty or polygon.area == 0:
        return MultiPolygon()
    return MultiPolygon([polygon])


def make_regular_polygon(
    center: Sequence[float],
    diameter: float,
    vertices: float,
    offset: float = 0.0,
    hole_diameter: float = 0.0,
    circle_points: int = 0,
) -> MultiPolygon:
    """Regular polygon with the given outer diameter, optionally with a round hole.

    ``offset`` is the angle in degrees of the first vertex; the hole is
    approximated with ``circle_points`` vertices.
    """
    count = int(vertices)
    if count < 3:
        return MultiPolygon()
    cx, cy = _point(center)
    step = -2 * math.pi / count
    start = math.radians(offset)
    ring = [
        (
            math.cos(step * i + start) * diameter / 2 + cx,
            math.sin(step * i + start) * diameter / 2 + cy,
        )
        for i in range(count)
    ]
    shape = _from_polygon(Polygon(ring))
    if hole_diameter > 0:
        shape = _difference(shape, make_regular_polygon(center, hole_diameter, circle_points))
    return shape


def make_rectangle(
    center: Sequence[float],
    width: float,
    height: float,
    hole_diameter: float = 0.0,
    circle_points: int = 0,
) -> MultiPolygon:
    """Axis-aligned rectangle centred on ``center``, optionally with a round hole."""
    x, y = _point(center)
    corners = [
        (x - width / 2, y - height / 2),
        (x - width / 2, y + height / 2),
        (x + width / 2, y + height / 2),
        (x + width / 2, y - height / 2),
    ]
    shape = _from_polygon(Polygon(corners))
    if hole_diameter > 0:
        shape = _difference(shape, make_regular_polygon(center, hole_diameter, circle_points))
    return shape


def make_segment_rectangle(
    point1: Sequence[float], point2: Sequence[float], height: float
) -> MultiPolygon:
    """Rectangle of thickness ``height`` along the segment from point1 to point2."""
    line = LineString([_point(point1), _point(point2)])
    return _as_multipolygon(line.buffer(height / 2, cap_style="flat", join_style="round"))


def make_oval(
    center: Sequence[float],
    width: float,
    height: float,
    hole_diameter: float = 0.0,
    circle_points: int = 0,
) -> MultiPolygon:
    """Obround of the given size, optionally with a round hole."""
    cx, cy = _point(center)
    if width > height:
        start = (cx - (width - height) / 2, cy)
        end = (cx + (width - height) / 2, cy)
    elif width < height:
        start = (cx, cy - (height - width) / 2)
        end = (cx, cy + (height - width) / 2)
    else:
        return make_regular_polygon(center, width, circle_points, 0, hole_diameter, circle_points)
    quad_segs = max(1, math.ceil(circle_points / 4))
    oval = _as_multipolygon(
        LineString([start, end]).buffer(
            min(width, height) / 2, quad_segs=quad_segs, cap_style="round", join_style="round"
        )
    )
    if hole_diameter > 0:
        oval = _difference(oval, make_regular_polygon(center, hole_diameter, circle_points))
    return oval


def linear_draw_rectangular_aperture(
    start: Sequence[float], end: Sequence[float], width: float, height: float
) -> MultiPolygon:
    """Area swept by a rectangular aperture moved from start to end."""
    corners = [
        (p[0] + w * width / 2, p[1] + h * height / 2)
        for p in (_point(start), _point(end))
        for w in (-1, 1)
        for h in (-1, 1)
    ]
    return _as_multipolygon(MultiPoint(corners).convex_hull)


def get_angle(
    start: Sequence[float], center: Sequence[float], stop: Sequence[float], clockwise: bool
) -> float:
    """Signed angle in radians from start to stop around center.

    Clockwise results are never positive, counterclockwise never negative.
    """
    start_angle = math.atan2(start[1] - center[1], start[0] - center[0])
    stop_angle = math.atan2(stop[1] - center[1], stop[0] - center[0])
    delta = stop_angle - start_angle
    while clockwise and delta > 0:
        delta -= 2 * math.pi
    while not clockwise and delta < 0:
        delta += 2 * math.pi
    return delta


def _distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def circular_arc(
    start: Sequence[float],
    stop: Sequence[float],
    center: Sequence[float],
    radius: float,
    radius2: float,
    delta_angle: float,
    clockwise: bool,
    circle_points: int,
) -> Line:
    """Approximate a circular arc by a linestring.

    ``delta_angle`` is in radians, positive counterclockwise.  The single or
    multi quadrant mode and the true centre are worked out from the inputs.
    """
    start = _point(start)
    stop = _point(stop)
    center = _point(center)
    single_quadrant = radius != radius2
    if start == stop:
        if single_quadrant or abs(delta_angle) < math.pi:
            delta_angle = 0.0
        else:
            delta_angle = -2 * math.pi if clockwise else 2 * math.pi
    else:
        signs = (-1.0, 1.0) if single_quadrant else (1.0,)
        i = abs(center[0] - start[0])
        j = abs(center[1] - start[1])
        delta_angle = get_angle(start, center, stop, clockwise)
        for i_sign in signs:
            for j_sign in signs:
                candidate = (start[0] + i * i_sign, start[1] + j * j_sign)
                new_angle = get_angle(start, candidate, stop, clockwise)
                if abs(new_angle) > math.pi:
                    continue
                if abs(_distance(start, candidate) - _distance(stop, candidate)) < abs(
                    _distance(start, center) - _distance(stop, center)
                ):
                    delta_angle = new_angle
                    center = candidate

    start_angle = math.atan2(start[1] - center[1], start[0] - center[0])
    stop_angle = start_angle + delta_angle
    start_radius = _distance(start, center)
    stop_radius = _distance(stop, center)
    steps = math.ceil(abs(delta_angle) / (2 * math.pi) * circle_points) + 1
    arc = [start]
    for step in range(1, steps - 1):
        stop_weight = step / (steps - 1)
        start_weight = 1 - stop_weight
        angle = start_angle * start_weight + stop_angle * stop_weight
        current_radius = start_radius * start_weight + stop_radius * stop_weight
        arc.append(
            (
                math.cos(angle) * current_radius + center[0],
                math.sin(angle) * current_radius + center[1],
            )
        )
    arc.append(stop)
    return arc


def make_moire(parameters: Sequence[float], circle_points: int) -> MultiPolygon:
    """Moiré macro primitive: concentric rings with a crosshair.

    ``parameters`` holds centre x, centre y, outer diameter, ring thickness,
    gap, maximum ring count, crosshair thickness and crosshair length.
    """
    cx, cy, outer, ring_thickness, gap, max_rings, cross_thickness, cross_length = (
        parameters[:8]
    )
    center = (cx, cy)
    parts = [
        make_rectangle(center, cross_thickness, cross_length),
        make_rectangle(center, cross_length, cross_thickness),
    ]
    for ring in range(int(max_rings)):
        external = outer - 2 * (ring_thickness + gap) * ring
        if external <= 0:
            break
        internal = max(external - 2 * ring_thickness, 0.0)
        parts.append(
            make_regular_polygon(center, external, circle_points, 0, internal, circle_points)
        )
    return _union(parts)


def make_thermal(
    center: Sequence[float],
    external_diameter: float,
    internal_diameter: float,
    gap_width: float,
    circle_points: int,
) -> MultiPolygon:
    """Thermal relief: a ring cut by a horizontal and a vertical gap."""
    ring = make_regular_polygon(
        center, external_diameter, circle_points, 0, internal_diameter, circle_points
    )
    vertical = make_rectangle(center, gap_width, 2 * external_diameter)
    horizontal = make_rectangle(center, 2 * external_diameter, gap_width)
    return _difference(_difference(ring, vertical), horizontal)


def split_loops(points: Iterable[Sequence[float]]) -> list[Line]:
    """Cut a linestring at repeated points into loops.

    Every returned linestring repeats no point except that rings start and
    end on the same point.  At most one returned linestring is not a ring.
    """
    line = [_point(p) for p in points]
    last = len(line) - 1
    for first, point in enumerate(line):
        for second in range(first + 1, len(line)):
            if line[second] != point:
                continue
            if first == 0 and second == last:
                continue
            inner = line[first:second] + [point]
            outer = line[:first] + line[second:]
            return split_loops(outer) + split_loops(inner)
    return [line]


def split_rings(ring: Iterable[Sequence[float]]) -> list[Line]:
    """Cut a closed ring at repeated points into simple rings."""
    return split_loops(ring)


def simplify_cutins(ring: Iterable[Sequence[float]]) -> MultiPolygon:
    """Turn a region contour with cut-ins into polygons with holes.

    Loops with no area are dropped; the rest are combined by exclusive or.
    Raises ValueError if the ring is not closed.
    """
    points = [_point(p) for p in ring]
    if len(points) < 4:
        return MultiPolygon()
    if points[0] != points[-1]:
        raise ValueError(f"Region contour is not closed: {LineString(points).wkt}")
    result = MultiPolygon()
    for piece in split_rings(points):
        if len(piece) < 4:
            continue
        polygon = Polygon(piece)
        if polygon.area == 0:
            continue
        shape = polygon if polygon.is_valid else _as_multipolygon(make_valid(polygon))
        result = _as_multipolygon(result.symmetric_difference(shape))
    return result