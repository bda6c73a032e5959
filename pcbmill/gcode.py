"""G-code output for isolation milling and outline cutting toolpaths.

Paths are lists of ``(x, y)`` points in inches.  Output goes to any text
stream; numbers are written in fixed-point notation with five decimals,
scaled to millimetres when metric output is requested.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TextIO

Point = tuple[float, float]
Path = Sequence[Point]

_DWELL = "G04 P0 ( dwell for no time -- G64 should not smooth over this point )\n"


def _f(value: float) -> str:
    return f"{value:.5f}"


@dataclass
class MillSettings:
    """Settings of a mill used for isolation milling.

    ``vertfeed`` defaults to half of ``feed`` and ``stepsize`` to the full
    depth ``-zwork`` (a single pass).
    """

    zwork: float
    zsafe: float
    feed: float
    speed: float
    zchange: float
    vertfeed: float | None = None
    stepsize: float | None = None
    tolerance: float = 0.0004
    explicit_tolerance: bool = True
    spinup_time: float = 1.0
    spindown_time: float = 1.0
    pre_milling_gcode: str = ""
    post_milling_gcode: str = ""

    def __post_init__(self) -> None:
        if self.vertfeed is None:
            self.vertfeed = self.feed / 2
        if self.stepsize is None:
            self.stepsize = -self.zwork

    @property
    def steps(self) -> int:
        """Number of depth passes needed to reach ``zwork``."""
        return max(0, math.ceil(-self.zwork / self.stepsize))


@dataclass
class CutterSettings(MillSettings):
    """Settings of an end mill cutting the board outline.

    ``bridges_height`` defaults to ``zsafe``.
    """

    bridges_height: float | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.bridges_height is None:
            self.bridges_height = self.zsafe


class GCodeWriter:
    """Writes the G-code program of one milling layer."""

    def __init__(
        self,
        metric_output: bool = False,
        zchange_absolute: bool = False,
        nom6: bool = False,
        xoffset: float = 0.0,
        yoffset: float = 0.0,
    ) -> None:
        self.metric_output = metric_output
        self.zchange_absolute = zchange_absolute
        self.nom6 = nom6
        self.xoffset = xoffset
        self.yoffset = yoffset
        self.cfactor = 25.4 if metric_output else 1.0
        self.header: list[str] = []
        self.preamble = ""
        self.postamble = ""

    def add_header(self, header: str) -> None:
        """Add a line written as a comment at the top of the program."""
        self.header.append(header)

    def set_preamble(self, preamble: str) -> None:
        self.preamble = preamble

    def set_postamble(self, postamble: str) -> None:
        self.postamble = postamble

    def _xy(self, point: Point, xoffset: float, yoffset: float) -> str:
        return (
            f"X{_f((point[0] - xoffset) * self.cfactor)} "
            f"Y{_f((point[1] - yoffset) * self.cfactor)}"
        )

    def _lift_to_start(
        self, out: TextIO, mill: MillSettings, path: Path, xoffset: float, yoffset: float
    ) -> None:
        out.write(f"G00 Z{_f(mill.zsafe * self.cfactor)} ( retract )\n")
        out.write(f"G00 {self._xy(path[0], xoffset, yoffset)} ( rapid move to begin. )\n")

    def cutter_milling(
        self,
        out: TextIO,
        cutter: CutterSettings,
        path: Path,
        bridges: Iterable[int],
        xoffset: float,
        yoffset: float,
    ) -> None:
        """Cut along ``path`` in depth passes, rising over the bridges.

        A bridge index ``b`` marks the segment from point ``b`` to ``b + 1``.
        The caller has already moved above the first point.
        """
        bridge_starts = set(bridges)
        cf = self.cfactor
        steps = cutter.steps
        for step in range(steps):
            z = cutter.zwork / steps * (step + 1)
            if step > 0 and path[0] != path[-1]:
                self._lift_to_start(out, cutter, path, xoffset, yoffset)

            out.write(f"G01 Z{_f(z * cf)} F{_f(cutter.vertfeed * cf)} ( plunge. )\n")
            out.write(_DWELL)
            out.write(f"G01 F{_f(cutter.feed * cf)}\n")

            in_bridge = False
            for current, point in enumerate(path[1:], 1):
                is_bridge_cut = (current - 1) in bridge_starts
                if is_bridge_cut and z < cutter.bridges_height and not in_bridge:
                    out.write(f"G00 Z{_f(cutter.bridges_height * cf)}\n")
                    in_bridge = True
                elif not is_bridge_cut and in_bridge:
                    out.write(f"G01 Z{_f(z * cf)} F{_f(cutter.vertfeed * cf)}\n")
                    out.write(f"G01 F{_f(cutter.feed * cf)}\n")
                    in_bridge = False
                out.write(f"G01 {self._xy(point, xoffset, yoffset)}\n")

    def isolation_milling(
        self,
        out: TextIO,
        mill: MillSettings,
        path: Path,
        xoffset: float,
        yoffset: float,
    ) -> None:
        """Mill along ``path`` in depth passes, with the custom pre and post code."""
        cf = self.cfactor
        out.write(f"G01 F{_f(mill.vertfeed * cf)}\n")
        if mill.pre_milling_gcode:
            out.write("( begin pre-milling-gcode )\n")
            out.write(f"{mill.pre_milling_gcode}\n")
            out.write("( end pre-milling-gcode )\n")

        steps = mill.steps
        for step in range(steps):
            z = mill.zwork / steps * (step + 1)
            out.write(f"( Mill infeed pass {step + 1}/{steps} )\n")
            if step > 0 and path[0] != path[-1]:
                self._lift_to_start(out, mill, path, xoffset, yoffset)
            out.write(f"G01 Z{_f(z * cf)}\n")
            out.write(_DWELL)
            out.write(f"G01 F{_f(mill.feed * cf)}\n")
            for point in path:
                out.write(f"G01 {self._xy(point, xoffset, yoffset)}\n")

        if mill.post_milling_gcode:
            out.write("( begin post-milling-gcode )\n")
            out.write(f"{mill.post_milling_gcode}\n")
            out.write("( end post-milling-gcode )\n")

    def _program_end(self, mill: MillSettings) -> str:
        g53 = "G53 " if self.zchange_absolute else ""
        return (
            "\n" + _DWELL + f"{g53}G00 Z{mill.zchange * self.cfactor:.6f} ( retract )\n\n"
            + self.postamble
            + f"M5 ( Spindle off. )\nG04 P{mill.spindown_time:f}\n"
        )

    def write_layer(
        self,
        out: TextIO,
        mill: MillSettings,
        toolpaths: Sequence[tuple[float, Sequence[Path]]],
        bridges: Sequence[Iterable[int]] | None = None,
    ) -> None:
        """Write a whole program for ``(tool_diameter, paths)`` groups.

        ``bridges`` holds one list of bridge segment indices per path and is
        used only for cutters.  Nothing is written when there are no groups.
        """
        if not toolpaths:
            return
        cf = self.cfactor
        is_cutter = isinstance(mill, CutterSettings)
        all_bridges = list(bridges) if bridges is not None else []
        g53 = "G53 " if self.zchange_absolute else ""

        for line in self.header:
            out.write(f"( {line} )\n")
        out.write("( Software-independent Gcode )\n")
        out.write("\n" + self.preamble)

        if self.metric_output:
            out.write("G94 ( Millimeters per minute feed rate. )\nG21 ( Units == Millimeters. )\n\n")
        else:
            out.write("G94 ( Inches per minute feed rate. )\nG20 ( Units == INCHES. )\n\n")

        out.write("G90 ( Absolute coordinates. )\n")
        out.write(f"G00 S{_f(mill.speed)} ( RPM spindle speed. )\n")
        if mill.explicit_tolerance:
            out.write(
                f"G64 P{_f(mill.tolerance * cf)} "
                "( set maximum deviation from commanded toolpath )\n"
            )
        out.write(f"G01 F{_f(mill.feed * cf)} ( Feedrate. )\n\n")

        last = len(toolpaths) - 1
        for tool_index, (diameter, paths) in enumerate(toolpaths):
            if not paths:
                continue
            out.write("\n")
            out.write(f"{g53}G00 Z{_f(mill.zchange * cf)} (Retract to tool change height)\n")
            out.write(f"T{tool_index}\n")
            out.write("M5      (Spindle stop.)\n")
            out.write(f"G04 P{_f(mill.spindown_time)} (Wait for spindle to stop)\n")
            kind = "cutter" if is_cutter else "mill"
            out.write(f"(MSG, Change tool bit to {kind} diameter ")
            if self.metric_output:
                out.write(f"{_f(diameter * 25.4)}mm)\n")
            else:
                out.write(f"{_f(diameter)}in)\n")
            if not self.nom6:
                out.write("M6      (Tool change.)\n")
            out.write("M0      (Temporary machine stop.)\n")
            out.write("M3 ( Spindle on clockwise. )\n")
            out.write(f"G04 P{_f(mill.spinup_time)} (Wait for spindle to get up to speed)\n")

            for path_index, path in enumerate(paths):
                if not path:
                    continue
                out.write(_DWELL)
                out.write(f"G00 Z{_f(mill.zsafe * cf)} ( retract )\n\n")
                out.write(
                    f"G00 {self._xy(path[0], self.xoffset, self.yoffset)} "
                    "( rapid move to begin. )\n"
                )
                if is_cutter:
                    path_bridges = all_bridges[path_index] if path_index < len(all_bridges) else ()
                    self.cutter_milling(
                        out, mill, path, path_bridges, self.xoffset, self.yoffset
                    )
                else:
                    self.isolation_milling(out, mill, path, self.xoffset, self.yoffset)

            if tool_index == last:
                out.write(self._program_end(mill))

        out.write("M9 ( Coolant off. )\nM2 ( Program end. )\n\n")