"""Merge points that lie very close together, usually from rounding errors."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from itertools import chain

Point = tuple[float, float]
Line = list[Point]


def _squared_distance(a: Point, b: Point) -> float:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2


def merge_point_map(
    points: Iterable[Sequence[float]], distance: float
) -> tuple[dict[Point, Point], int]:
    """Map every distinct point to the location it is merged to.

    Points are visited in sorted order; each one pulls later points within
    ``distance`` onto its own location.  Returns the mapping and the number
    of merges made.
    """
    mapping: dict[Point, Point] = {}
    for p in points:
        key = (p[0], p[1])
        mapping[key] = key
    keys = sorted(mapping)
    limit = distance * distance
    merged = 0
    for index, key in enumerate(keys):
        target = mapping[key]
        end = bisect_right(keys, (target[0] + distance, target[1] + distance))
        for other in keys[index:end]:
            current = mapping[other]
            if current != target and _squared_distance(target, current) <= limit:
                mapping[other] = target
                merged += 1
    return mapping, merged


def merge_near_points(
    lines: Iterable[Iterable[Sequence[float]]], distance: float
) -> tuple[list[Line], int]:
    """Snap nearby points of the linestrings together.

    Returns the adjusted linestrings and the number of merges made.
    """
    result = [[(p[0], p[1]) for p in line] for line in lines]
    mapping, merged = merge_point_map(chain.from_iterable(result), distance)
    if merged:
        result = [[mapping[p] for p in line] for line in result]
    return result, merged


def merge_near_points_flagged(
    lines: Iterable[tuple[Iterable[Sequence[float]], bool]], distance: float
) -> tuple[list[tuple[Line, bool]], int]:
    """Like merge_near_points, for ``(linestring, allow_reversal)`` pairs."""
    pairs = list(lines)
    merged_lines, merged = merge_near_points((line for line, _ in pairs), distance)
    return [(line, flag) for line, (_, flag) in zip(merged_lines, pairs)], merged