# pcbmill

`pcbmill` is a library for the geometry and G-code side of milling printed
circuit boards on a CNC machine. It builds polygons for Gerber apertures and
drawings, combines drawn layers into a final copper shape, parses and checks
a milling configuration, and writes G-code for isolation milling and for
cutting a board out along its outline.

Filled shapes are shapely `MultiPolygon` objects; points are `(x, y)` tuples
and linestrings are lists of points.

## Modules

- `pcbmill.geos_convert` – converts between point lists and shapely
  geometries: `linestring_to_shapely`, `ring_to_shapely`,
  `polygon_to_shapely`, `multipolygon_to_shapely`,
  `multilinestring_to_shapely` and the matching `linestring_from_shapely`,
  `ring_from_shapely`, `polygon_from_shapely`, `multipolygon_from_shapely`
  and `multilinestring_from_shapely`. A polygon is an `(outer, inners)` pair.
  `multipolygon_from_geometry` accepts a polygon or a multipolygon; the
  `*_from_*` functions raise `TypeError` for a geometry of the wrong kind.
- `pcbmill.merge_near_points` – snaps points that lie within a given distance
  of each other onto one location, so that lines which nearly meet do meet.
  `merge_near_points` returns the adjusted linestrings and the number of
  merges; `merge_near_points_flagged` does the same for
  `(linestring, allow_reversal)` pairs; `merge_point_map` returns the mapping
  from each point to its new location and the number of merges.
- `pcbmill.shapes` – the primitive shapes of the Gerber format:
  `make_regular_polygon` and `make_rectangle` (both with an optional round
  hole), `make_segment_rectangle`, `make_oval`, `make_moire`, `make_thermal`,
  `linear_draw_rectangular_aperture` for strokes of a rectangular aperture,
  and `circular_arc` and `get_angle` for arcs approximated by line segments.
  `split_loops` and `split_rings` cut a linestring at repeated points;
  `simplify_cutins` turns a closed contour with cut-ins into polygons and
  raises `ValueError` if the contour is not closed.
- `pcbmill.apertures` – aperture definitions (`Aperture`, `ApertureType`,
  `MacroPrimitive`), turning them into shapes centred on the origin
  (`build_aperture`, `build_apertures`; skipped apertures are logged), and
  combining layers of draws (`Polarity`, `StepAndRepeat`, `LayerStyle`,
  `DrawPair`, `layers_equivalent`, `merge_draws`, `combine_layers`).
  `combine_layers` raises `GerberError` for a polarity other than dark or
  clear.
- `pcbmill.options` – `Options` parses a command line and configuration files
  (`Options.parse`, `Options.parse_files`), is read like a dictionary, and
  reports through `Options.is_defaulted` whether a value was given or is a
  default. `Options.help` describes every option. `Quantity` and
  `parse_quantity` handle lengths, velocities, rotation speeds, times and
  percentages with units. Errors raise `OptionsError`, which carries an
  `ErrorCode`; with `--ignore-warnings` they are only logged
  (`Options.maybe_raise`).
- `pcbmill.checks` – validation of a parsed option set, for example that the
  safe height lies above the working depth: `check_parameters` and the
  per-area `check_generic_parameters`, `check_milling_parameters`,
  `check_cutting_parameters` and `check_drilling_parameters`. Warnings go to
  the `logging` module.
- `pcbmill.gcode` – `GCodeWriter` writes a whole layer program
  (`write_layer`) or single paths (`isolation_milling`, `cutter_milling`) to
  any text stream, for tools described by `MillSettings` and
  `CutterSettings`, with multi-pass infeed, raised bridges on outline cuts,
  header comments, preamble and postamble, and optional millimetre output.

## Example

```python
from pcbmill.shapes import make_regular_polygon, circular_arc

# A round pad of 1.5 mm with a 0.8 mm hole, circles drawn with 32 segments.
pad = make_regular_polygon((0.0, 0.0), 1.5, 32, 0.0, 0.8, 32)

# A counter-clockwise quarter circle around the origin.
arc = circular_arc((1.0, 0.0), (0.0, 1.0), (0.0, 0.0), 1.0, 1.0,
                   1.5707963267948966, False, 32)
```

```python
import io

from pcbmill.gcode import GCodeWriter, MillSettings

mill = MillSettings(zwork=-0.002, zsafe=0.1, feed=10.0, speed=10000, zchange=1.0)
out = io.StringIO()
GCodeWriter().write_layer(out, mill, [(0.01, [[(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]])])
print(out.getvalue())
```

```python
from pcbmill.checks import check_parameters
from pcbmill.options import Options, OptionsError

options = Options()
try:
    options.parse(["--zsafe", "2mm", "--zchange", "10mm"])
    check_parameters(options)
except OptionsError as error:
    print(error.code, error)
```

Units are accepted in forms such as `5mm`, `0.1in`, `50in/min`, `1 ms`,
`10000rpm` and `10%`. A number without a unit is kept as a bare number and is
read in inches, or in millimetres when `--metric` is set.

## What it does not do

- It does not read Gerber or Excellon files. Apertures and draws are given
  as `Aperture`, `LayerStyle` and `DrawPair` objects built by the caller.
- There is no command to run; it is used as a library.
- It does not compute tool paths from copper shapes, nor where bridges go on
  an outline: `GCodeWriter` takes ready paths and bridge segment indices.
- `GCodeWriter` writes software-independent G-code only: no autolevelling
  probe code, no tiling, and no drilling programs.