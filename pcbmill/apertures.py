"""Aperture shapes and layer composition for rendering Gerber images.

An aperture becomes a shapely ``MultiPolygon`` centred on the origin.
Layers of draws are combined according to polarity and step-and-repeat.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from functools import reduce

from shapely import affinity
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from pcbmill.shapes import (
    make_moire,
    make_oval,
    make_rectangle,
    make_regular_polygon,
    make_segment_rectangle,
    make_thermal,
    simplify_cutins,
)

logger = logging.getLogger(__name__)

_ORIGIN = (0.0, 0.0)


class GerberError(Exception):
    """Raised when a Gerber image cannot be rendered."""


class ApertureType(Enum):
    NONE = auto()
    CIRCLE = auto()
    RECTANGLE = auto()
    OVAL = auto()
    POLYGON = auto()
    MACRO = auto()
    MACRO_CIRCLE = auto()
    MACRO_OUTLINE = auto()
    MACRO_POLYGON = auto()
    MACRO_MOIRE = auto()
    MACRO_THERMAL = auto()
    MACRO_LINE20 = auto()
    MACRO_LINE21 = auto()
    MACRO_LINE22 = auto()


_PLAIN_TYPES = {
    ApertureType.NONE,
    ApertureType.CIRCLE,
    ApertureType.RECTANGLE,
    ApertureType.OVAL,
    ApertureType.POLYGON,
}


class Polarity(Enum):
    POSITIVE = auto()
    NEGATIVE = auto()
    DARK = auto()
    CLEAR = auto()


@dataclass(frozen=True)
class MacroPrimitive:
    """One primitive of a macro whose variables are already substituted."""

    type: ApertureType
    parameters: tuple[float, ...] = ()


@dataclass(frozen=True)
class Aperture:
    """An aperture definition.  ``macro`` is None for unsimplified macros."""

    type: ApertureType
    parameters: tuple[float, ...] = ()
    macro: tuple[MacroPrimitive, ...] | None = None


@dataclass(frozen=True)
class StepAndRepeat:
    x: int = 1
    y: int = 1
    dist_x: float = 0.0
    dist_y: float = 0.0


@dataclass(frozen=True)
class LayerStyle:
    """Polarity and step-and-repeat settings shared by a run of draws."""

    polarity: Polarity = Polarity.DARK
    step_and_repeat: StepAndRepeat = field(default_factory=StepAndRepeat)


@dataclass
class DrawPair:
    """Shapes combined by union, and filled closed lines combined by xor."""

    shapes: MultiPolygon = field(default_factory=MultiPolygon)
    filled_closed_lines: MultiPolygon = field(default_factory=MultiPolygon)


def _to_multipolygon(geometry: BaseGeometry) -> MultiPolygon:
    if geometry.is_empty:
        return MultiPolygon()
    if isinstance(geometry, MultiPolygon):
        return geometry
    if isinstance(geometry, Polygon):
        return MultiPolygon([geometry])
    if hasattr(geometry, "geoms"):
        return MultiPolygon(
            [poly for part in geometry.geoms for poly in _to_multipolygon(part).geoms]
        )
    return MultiPolygon()


def _param(parameters: Sequence[float], index: int) -> float:
    """Parameters beyond the given ones read as zero."""
    return float(parameters[index]) if index < len(parameters) else 0.0


def _macro_primitive(
    primitive: MacroPrimitive, circle_points: int
) -> tuple[MultiPolygon, bool, float] | None:
    """Return the shape, whether it is dark, and its rotation in degrees."""
    p = primitive.parameters

    def at(i: int) -> float:
        return _param(p, i)

    kind = primitive.type
    if kind in _PLAIN_TYPES:
        logger.warning("Non-macro aperture during macro drawing: skipping")
        return None
    if kind is ApertureType.MACRO:
        logger.warning("Macro start aperture during macro drawing: skipping")
        return None
    if kind is ApertureType.MACRO_CIRCLE:
        shape = make_regular_polygon((at(2), at(3)), at(1), circle_points, 0)
        return shape, at(0) != 0, at(4)
    if kind is ApertureType.MACRO_OUTLINE:
        count = round(at(1))
        ring = [(at(i * 2 + 2), at(i * 2 + 3)) for i in range(count + 1)]
        if ring and ring[0] != ring[-1]:
            ring.append(ring[0])
        return simplify_cutins(ring), at(0) != 0, at(2 * count + 4)
    if kind is ApertureType.MACRO_POLYGON:
        shape = make_regular_polygon((at(2), at(3)), at(4), at(1), 0)
        return shape, at(0) != 0, at(5)
    if kind is ApertureType.MACRO_MOIRE:
        return make_moire([at(i) for i in range(8)], circle_points), True, at(8)
    if kind is ApertureType.MACRO_THERMAL:
        shape = make_thermal((at(0), at(1)), at(2), at(3), at(4), circle_points)
        return shape, True, at(5)
    if kind is ApertureType.MACRO_LINE20:
        shape = make_segment_rectangle((at(2), at(3)), (at(4), at(5)), at(1))
        return shape, at(0) != 0, at(6)
    if kind is ApertureType.MACRO_LINE21:
        shape = make_rectangle((at(3), at(4)), at(1), at(2))
        return shape, at(0) != 0, at(5)
    if kind is ApertureType.MACRO_LINE22:
        center = (at(3) + at(1) / 2, at(4) + at(2) / 2)
        return make_rectangle(center, at(1), at(2)), at(0) != 0, at(5)
    logger.warning("Unrecognized aperture: skipping")
    return None


def build_aperture(aperture: Aperture | None, circle_points: int) -> MultiPolygon | None:
    """Return the shape of an aperture centred on the origin.

    Returns None for apertures that are skipped.
    """
    if aperture is None:
        return None
    p = aperture.parameters

    def at(i: int) -> float:
        return _param(p, i)

    kind = aperture.type
    if kind is ApertureType.NONE:
        return None
    if kind is ApertureType.CIRCLE:
        return make_regular_polygon(_ORIGIN, at(0), circle_points, at(1), at(2), circle_points)
    if kind is ApertureType.RECTANGLE:
        return make_rectangle(_ORIGIN, at(0), at(1), at(2), circle_points)
    if kind is ApertureType.OVAL:
        return make_oval(_ORIGIN, at(0), at(1), at(2), circle_points)
    if kind is ApertureType.POLYGON:
        return make_regular_polygon(_ORIGIN, at(0), at(1), at(2), at(3), circle_points)
    if kind is ApertureType.MACRO:
        if aperture.macro is None:
            logger.warning("Macro aperture is not simplified: skipping")
            return None
        result = MultiPolygon()
        for primitive in aperture.macro:
            drawn = _macro_primitive(primitive, circle_points)
            if drawn is None:
                continue
            shape, dark, rotation = drawn
            rotated = affinity.rotate(shape, rotation, origin=_ORIGIN)
            if dark:
                result = _to_multipolygon(result.union(rotated))
            else:
                result = _to_multipolygon(result.difference(rotated))
        return result
    logger.warning("Macro aperture during non-macro drawing: skipping")
    return None


def build_apertures(
    apertures: Mapping[int, Aperture | None], circle_points: int
) -> dict[int, MultiPolygon]:
    """Build the shape of every usable aperture, keyed by aperture number."""
    result: dict[int, MultiPolygon] = {}
    for number in sorted(apertures):
        shape = build_aperture(apertures[number], circle_points)
        if shape is not None:
            result[number] = shape
    return result


def layers_equivalent(first: LayerStyle, second: LayerStyle) -> bool:
    """True if both layers share polarity and step-and-repeat settings."""
    return first.polarity == second.polarity and first.step_and_repeat == second.step_and_repeat


def _symdiff(shapes: Iterable[BaseGeometry]) -> MultiPolygon:
    return reduce(
        lambda acc, shape: _to_multipolygon(acc.symmetric_difference(shape)),
        shapes,
        MultiPolygon(),
    )


def merge_draws(draws: Sequence[DrawPair]) -> DrawPair:
    """Union all shapes and xor all filled closed lines of the draws."""
    if not draws:
        return DrawPair()
    if len(draws) == 1:
        return draws[0]
    return DrawPair(
        _to_multipolygon(unary_union([d.shapes for d in draws])),
        _symdiff(d.filled_closed_lines for d in draws),
    )


def combine_layers(
    layers: Iterable[tuple[LayerStyle, DrawPair]], member: str, xor_layers: bool
) -> MultiPolygon:
    """Draw or erase each layer's ``member`` shapes in order.

    ``member`` is ``"shapes"`` or ``"filled_closed_lines"``.  With
    ``xor_layers`` each layer is xored onto the result regardless of polarity.
    """
    if member not in ("shapes", "filled_closed_lines"):
        raise ValueError(f"Unknown draw member: {member!r}")
    output = MultiPolygon()
    for style, pair in layers:
        draws = getattr(pair, member)
        repeat = style.step_and_repeat
        if repeat.x > 0 or repeat.y > 0:
            copies = [draws]
            for sr_x in range(repeat.x):
                for sr_y in range(repeat.y):
                    if sr_x == 0 and sr_y == 0:
                        continue
                    copies.append(
                        affinity.translate(
                            draws, repeat.dist_x * sr_x, repeat.dist_y * sr_y
                        )
                    )
            draws = _to_multipolygon(unary_union(copies))

        if xor_layers:
            output = _to_multipolygon(output.symmetric_difference(draws))
        elif style.polarity is Polarity.DARK:
            output = _to_multipolygon(output.union(draws))
        elif style.polarity is Polarity.CLEAR:
            output = _to_multipolygon(output.difference(draws))
        else:
            raise GerberError(
                "Non-positive image polarity is deprecated by the Gerber "
                "standard and unsupported"
            )
    return output