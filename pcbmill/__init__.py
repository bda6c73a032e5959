"""Gerber aperture geometry, layer composition, milling options and G-code output."""

__version__ = "0.1.0"

__all__ = [
    "apertures",
    "checks",
    "gcode",
    "geos_convert",
    "merge_near_points",
    "options",
    "shapes",
]