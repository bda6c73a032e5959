"""Command line and configuration file options for the milling tool.

Options come from the command line first and then from configuration
files; a value that was given explicitly is never replaced by a later
source, while defaults are.
"""

from __future__ import annotations

import copy
import logging
import re
import sys
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from collections import deque
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PROGRAM_NAME = "pcbmill"


class ErrorCode(IntEnum):
    OK = 0
    NOZWORK = 1
    NOCUTTERDIAMETER = 2
    NOZSAFE = 3
    NOOFFSET = 4
    NOZCUT = 5
    NOCUTFEED = 6
    NOCUTSPEED = 7
    NOCUTINFEED = 8
    NOZDRILL = 9
    NOZCHANGE = 10
    NODRILLFEED = 11
    NODRILLSPEED = 12
    NOMILLFEED = 13
    NOMILLSPEED = 14
    ZSAFELOWERZWORK = 15
    NEGATIVEMILLFEED = 16
    NEGATIVEMILLSPEED = 17
    ZSAFELOWERZDRILL = 18
    ZSAFELOWERZCHANGE = 19
    NEGATIVEDRILLFEED = 20
    ZSAFELOWERZCUT = 21
    NEGATIVECUTFEED = 22
    NEGATIVESPINDLESPEED = 23
    LOWCUTINFEED = 24
    NOOUTLINEWIDTH = 25
    NEGATIVEOUTLINEWIDTH = 26
    ZEROOUTLINEWIDTH = 27
    NEGATIVEDRILLSPEED = 28
    NOSOFTWARE = 29
    NOALX = 30
    NOALY = 31
    NOALPROBEFEED = 32
    NEGATIVEBRIDGE = 33
    BRIDGENOOPTIMISE = 34
    NEGATIVEALX = 35
    NEGATIVEALY = 36
    NEGATIVEPROBEFEED = 37
    NEGATIVECUTVERTFEED = 39
    NEGATIVEMILLVERTFEED = 40
    NEGATIVETILEX = 41
    NEGATIVETILEY = 42
    BOTHDRILLFRONTSIDE = 43
    UNKNOWNDRILLSIDE = 44
    BOTHCUTFRONTSIDE = 45
    UNKNOWNCUTSIDE = 46
    VORONOINOVECTORIAL = 47
    VORONOINOOUTLINE = 48
    BOTHTOLERANCEG64 = 49
    NEGATIVETOLERANCE = 50
    NEGATIVEZWORK = 51
    NEGATIVESPINUP = 52
    NEGATIVESPINDOWN = 53
    FALSEMIRRORABSOLUTE = 54
    LOWMILLINFEED = 55
    INVALIDPARAMETER = 100
    UNKNOWNPARAMETER = 101


class OptionsError(Exception):
    """An invalid or inconsistent set of options."""

    def __init__(self, message: str, code: ErrorCode) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message


class Dimension(Enum):
    LENGTH = "length"
    VELOCITY = "velocity"
    ROTATION = "rotation"
    TIME = "time"
    PERCENT = "percent"


class BoardSide(Enum):
    FRONT = "front"
    BACK = "back"
    AUTO = "auto"


class MillFeedDirection(Enum):
    ANY = "any"
    CLIMB = "climb"
    CONVENTIONAL = "conventional"


class Software(Enum):
    LINUXCNC = "linuxcnc"
    MACH3 = "mach3"
    MACH4 = "mach4"
    CUSTOM = "custom"


_INCH_IN_METERS = (254, 10000)

# Unit name -> (multiplier, divisor) into the base unit.
_LENGTH_UNITS = {
    **dict.fromkeys(("m", "meter", "meters", "metre", "metres"), (1, 1)),
    **dict.fromkeys(("dm",), (1, 10)),
    **dict.fromkeys(("cm",), (1, 100)),
    **dict.fromkeys(("mm", "millimeter", "millimeters", "millimetre", "millimetres"), (1, 1000)),
    **dict.fromkeys(("um", "µm", "micron", "microns"), (1, 1_000_000)),
    **dict.fromkeys(("in", "inch", "inches"), _INCH_IN_METERS),
    **dict.fromkeys(("ft", "foot", "feet"), (3048, 10000)),
    **dict.fromkeys(("mil", "mils", "thou"), (254, 10_000_000)),
}
_TIME_UNITS = {
    **dict.fromkeys(("s", "sec", "secs", "second", "seconds"), (1, 1)),
    **dict.fromkeys(("ms", "millisecond", "milliseconds"), (1, 1000)),
    **dict.fromkeys(("min", "mins", "minute", "minutes"), (60, 1)),
    **dict.fromkeys(("h", "hr", "hour", "hours"), (3600, 1)),
}
_ROTATION_UNITS = {
    **dict.fromkeys(("rpm", "rev/min", "revolutions/min"), (1, 1)),
    **dict.fromkeys(("rps", "rev/s", "rev/sec"), (60, 1)),
}
_VELOCITY_SHORTHANDS = {"ipm": ("in", "min"), "ips": ("in", "s")}
_PERCENT_UNITS = {"%": (1, 100), "percent": (1, 100)}

_SYMBOLS = {
    Dimension.LENGTH: "m",
    Dimension.VELOCITY: "m/s",
    Dimension.ROTATION: "rpm",
    Dimension.TIME: "s",
}

_QUANTITY = re.compile(
    r"(?P<number>[-+]?(?:inf(?:inity)?|(?:\d+(?:\.\d*)?|\.\d+)(?:e[-+]?\d+)?))\s*(?P<unit>.*)",
    re.IGNORECASE,
)


def _lookup(table: Mapping[str, tuple[int, int]], unit: str, kind: str) -> tuple[int, int]:
    try:
        return table[unit]
    except KeyError:
        raise ValueError(f"unknown {kind} unit {unit!r}") from None


def _velocity(amount: float, unit: str) -> float:
    if unit in _VELOCITY_SHORTHANDS:
        length_unit, time_unit = _VELOCITY_SHORTHANDS[unit]
    else:
        for separator in ("/", " per "):
            if separator in unit:
                length_unit, time_unit = (part.strip() for part in unit.split(separator, 1))
                break
        else:
            raise ValueError(f"unknown velocity unit {unit!r}")
    lm, ld = _lookup(_LENGTH_UNITS, length_unit, "length")
    tm, td = _lookup(_TIME_UNITS, time_unit, "time")
    return amount * lm * td / (ld * tm)


def _scaled(table: Mapping[str, tuple[int, int]], kind: str) -> Callable[[float, str], float]:
    def convert(amount: float, unit: str) -> float:
        multiplier, divisor = _lookup(table, unit, kind)
        return amount * multiplier / divisor

    return convert


_CONVERTERS: dict[Dimension, Callable[[float, str], float]] = {
    Dimension.LENGTH: _scaled(_LENGTH_UNITS, "length"),
    Dimension.TIME: _scaled(_TIME_UNITS, "time"),
    Dimension.ROTATION: _scaled(_ROTATION_UNITS, "rotation"),
    Dimension.PERCENT: _scaled(_PERCENT_UNITS, "percent"),
    Dimension.VELOCITY: _velocity,
}


@dataclass(frozen=True)
class Quantity:
    """A physical amount.

    With ``has_unit`` the amount is in SI base units (metres, seconds,
    metres per second, a fraction for percentages; revolutions per minute
    for rotation).  Without it the amount is a bare number whose unit is
    supplied by the caller as a conversion factor.
    """

    amount: float
    dimension: Dimension
    has_unit: bool = False

    def _require(self, dimension: Dimension) -> None:
        if self.dimension is not dimension:
            raise ValueError(f"expected a {dimension.value}, got a {self.dimension.value}")

    def as_inch(self, factor: float = 1.0) -> float:
        self._require(Dimension.LENGTH)
        if self.has_unit:
            return self.amount * _INCH_IN_METERS[1] / _INCH_IN_METERS[0]
        return self.amount * factor

    def as_inch_per_minute(self, factor: float = 1.0) -> float:
        self._require(Dimension.VELOCITY)
        if self.has_unit:
            return self.amount * _INCH_IN_METERS[1] / _INCH_IN_METERS[0] * 60
        return self.amount * factor

    def as_millisecond(self, factor: float = 1.0) -> float:
        self._require(Dimension.TIME)
        return self.amount * 1000 if self.has_unit else self.amount * factor

    def as_rpm(self, factor: float = 1.0) -> float:
        self._require(Dimension.ROTATION)
        return self.amount if self.has_unit else self.amount * factor

    def as_fraction(self, factor: float = 1.0) -> float:
        self._require(Dimension.PERCENT)
        return self.amount if self.has_unit else self.amount * factor

    def __mul__(self, scalar: float) -> Quantity:
        return Quantity(self.amount * scalar, self.dimension, self.has_unit)

    __rmul__ = __mul__

    def __lt__(self, other: Quantity) -> bool:
        if not isinstance(other, Quantity) or other.dimension is not self.dimension:
            return NotImplemented
        return self.amount < other.amount

    def __str__(self) -> str:
        if not self.has_unit:
            return f"{self.amount:g}"
        if self.dimension is Dimension.PERCENT:
            return f"{self.amount * 100:g}%"
        return f"{self.amount:g} {_SYMBOLS[self.dimension]}"


def parse_quantity(text: str, dimension: Dimension | str) -> Quantity:
    """Parse text such as ``"5mm"``, ``"50in/min"`` or ``"10%"``.

    A number without a unit gives a unitless quantity.  Raises ValueError
    when the text is not a quantity of the given dimension.
    """
    dimension = Dimension(dimension)
    match = _QUANTITY.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"cannot parse {text!r} as a {dimension.value}")
    amount = float(match["number"])
    unit = match["unit"].strip().lower()
    if not unit:
        return Quantity(amount, dimension)
    return Quantity(_CONVERTERS[dimension](amount, unit), dimension, True)


def _bool(text: str) -> bool:
    value = text.strip().lower()
    if value in ("", "on", "yes", "1", "true"):
        return True
    if value in ("off", "no", "0", "false"):
        return False
    raise ValueError(f"{text!r} is not a boolean")


def _uint(text: str) -> int:
    value = int(text)
    if value < 0:
        raise ValueError(f"{text!r} is negative")
    return value


def _quantity(dimension: Dimension) -> Callable[[str], Quantity]:
    return lambda text: parse_quantity(text, dimension)


def _length_or_percent(text: str) -> Quantity:
    try:
        return parse_quantity(text, Dimension.LENGTH)
    except ValueError:
        pass
    try:
        return parse_quantity(text, Dimension.PERCENT)
    except ValueError:
        raise ValueError(f"{text!r} is neither a length nor a percentage") from None


def _comma_separated(convert: Callable[[str], Any]) -> Callable[[str], list[Any]]:
    return lambda text: [convert(part.strip()) for part in text.split(",")]


def _choice(enum: type[Enum]) -> Callable[[str], Enum]:
    def convert(text: str) -> Enum:
        try:
            return enum(text.strip().lower())
        except ValueError:
            choices = ", ".join(member.value for member in enum)
            raise ValueError(f"{text!r} is not one of {choices}") from None

    return convert


_LENGTH = _quantity(Dimension.LENGTH)
_VELOCITY = _quantity(Dimension.VELOCITY)
_ROTATION = _quantity(Dimension.ROTATION)
_TIME = _quantity(Dimension.TIME)

_MISSING: Any = object()


@dataclass(frozen=True)
class _Spec:
    name: str
    convert: Callable[[str], Any] | None
    help: str
    default: Any = _MISSING
    implicit: Any = _MISSING
    multi: bool = False
    multitoken: bool = False
    short: str | None = None
    cli_only: bool = False

    @property
    def is_switch(self) -> bool:
        return self.convert is None

    def build(self, raws: Sequence[str | None]) -> Any:
        if self.is_switch:
            return True
        if not self.multi and len(raws) > 1:
            raise ValueError(f"option '--{self.name}' cannot be specified more than once")
        values = [
            copy.deepcopy(self.implicit) if raw is None else self._convert(raw) for raw in raws
        ]
        return values if self.multi else values[0]

    def _convert(self, raw: str) -> Any:
        try:
            return self.convert(raw)
        except ValueError as error:
            raise ValueError(
                f"the argument ('{raw}') for option '--{self.name}' is invalid: {error}"
            ) from error

    def usage(self) -> str:
        text = f"-{self.short} [ --{self.name} ]" if self.short else f"--{self.name}"
        if not self.is_switch:
            text += " arg"
        if self.default is not _MISSING and not isinstance(self.default, list):
            text += f" (={_describe(self.default)})"
        return text


def _describe(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _opt(name: str, convert: Callable[[str], Any] | None, help: str, **kwargs: Any) -> _Spec:
    return _Spec(name, convert, help, **kwargs)


def _flag(name: str, default: bool, help: str) -> _Spec:
    return _Spec(name, _bool, help, default=default, implicit=True)


def _build_sections() -> list[tuple[str, list[_Spec]]]:
    inf = float("inf")
    cli = [
        _flag("noconfigfile", False, "ignore any configuration file"),
        _opt("config", _comma_separated(str), "list of comma-separated config files",
             default=[["millproject"]], multi=True, multitoken=True),
        _opt("help", None, "produce help message", short="?"),
        _opt("version", None, "show the current software version", short="V"),
    ]
    cli = [_Spec(**{**spec.__dict__, "cli_only": True}) for spec in cli]
    drilling = [
        _opt("drill", str, "Excellon drill file"),
        _flag("milldrill", False, "[DEPRECATED] Use min-milldrill-hole-diameter=0 instead"),
        _opt("milldrill-diameter", _LENGTH, "diameter of the end mill used for drilling with --milldrill"),
        _opt("min-milldrill-hole-diameter", _LENGTH,
             "minimum hole width or milldrilling.  Holes smaller than this are drilled.  This implies milldrill",
             default=Quantity(inf, Dimension.LENGTH)),
        _opt("zdrill", _LENGTH, "drilling depth"),
        _opt("zmilldrill", _LENGTH, "milldrilling depth"),
        _opt("drill-feed", _VELOCITY, "drill feed in [i/m] or [mm/m]"),
        _opt("drill-speed", _ROTATION, "spindle rpm when drilling"),
        _opt("drill-front", _bool,
             "[DEPRECATED, use drill-side instead] drill through the front side of board", implicit=True),
        _opt("drill-side", _choice(BoardSide),
             "drill side; valid choices are front, back or auto (default)", default=BoardSide.AUTO),
        _opt("drills-available", _LENGTH, "list of drills available",
             default=[], multi=True, multitoken=True),
        _flag("onedrill", False, "use only one drill bit size"),
        _opt("drill-output", str, "output file for drilling", default="drill.ngc"),
        _flag("nog91-1", False, "do not explicitly set G91.1 in drill headers"),
        _flag("nog81", False, "replace G81 with G0+G1"),
        _flag("nom6", False, "do not emit M6 on tool changes"),
        _opt("milldrill-output", str, "output file for milldrilling", default="milldrill.ngc"),
    ]
    milling = [
        _opt("front", str, "front side RS274-X .gbr"),
        _opt("back", str, "back side RS274-X .gbr"),
        _flag("voronoi", False, "generate voronoi regions"),
        _opt("offset", _LENGTH,
             "Note: Prefer to use --mill-diameters and --milling-overlap.  An optional offset "
             "to add to all traces, useful if the bit has a little slop that you want to keep "
             "out of the trace.",
             default=Quantity(0.0, Dimension.LENGTH)),
        _opt("mill-diameters", _comma_separated(_LENGTH),
             "Diameters of mill bits, used in the order that they are provided.",
             default=[[Quantity(0.0, Dimension.LENGTH)]], multi=True, multitoken=True),
        _opt("milling-overlap", _length_or_percent,
             "How much to overlap milling passes, from 0% to 100% or an absolute length",
             default=parse_quantity("50%", Dimension.PERCENT)),
        _opt("isolation-width", _LENGTH, "Minimum isolation width between copper surfaces",
             default=Quantity(0.0, Dimension.LENGTH)),
        _opt("extra-passes", int,
             "[DEPRECATED] use --isolation-width instead. Specify the number of extra isolation "
             "passes, increasing the isolation width half the tool diameter with each pass",
             default=0),
        _opt("pre-milling-gcode", str,
             "custom gcode inserted before the start of milling each trace",
             default=[], multi=True),
        _opt("post-milling-gcode", str,
             "custom gcode inserted after the end of milling each trace",
             default=[], multi=True),
        _opt("zwork", _LENGTH, "milling depth in inches (Z-coordinate while engraving)"),
        _opt("mill-feed", _VELOCITY, "feed while isolating in [i/m] or [mm/m]"),
        _opt("mill-vertfeed", _VELOCITY, "vertical feed while isolating in [i/m] or [mm/m]"),
        _opt("mill-infeed", _LENGTH, "maximum milling depth; PCB may be cut in multiple passes"),
        _opt("mill-speed", _ROTATION, "spindle rpm when milling"),
        _opt("mill-feed-direction", _choice(MillFeedDirection),
             "In which direction should all milling occur", default=MillFeedDirection.ANY),
        _flag("invert-gerbers", False,
              "Invert polarity of front and back gerbers, causing the milling to occur inside the shapes"),
        _flag("draw-gerber-lines", False,
              "Draw lines in the gerber file as just lines and not as filled in shapes"),
        _flag("preserve-thermal-reliefs", True, "generate mill paths for thermal reliefs in voronoi mode"),
        _opt("front-output", str, "output file for front layer", default="front.ngc"),
        _opt("back-output", str, "output file for back layer", default="back.ngc"),
    ]
    outline = [
        _opt("outline", str, "pcb outline polygon RS274-X .gbr"),
        _flag("fill-outline", True, "accept a contour instead of a polygon as outline (enabled by default)"),
        _opt("cutter-diameter", _LENGTH, "diameter of the end mill used for cutting out the PCB"),
        _opt("zcut", _LENGTH, "PCB cutting depth in inches"),
        _opt("cut-feed", _VELOCITY, "PCB cutting feed in [i/m] or [mm/m]"),
        _opt("cut-vertfeed", _VELOCITY, "PCB vertical cutting feed in [i/m] or [mm/m]"),
        _opt("cut-speed", _ROTATION, "spindle rpm when cutting"),
        _opt("cut-infeed", _LENGTH, "maximum cutting depth; PCB may be cut in multiple passes"),
        _opt("cut-front", _bool, "[DEPRECATED, use cut-side instead] cut from front side.", implicit=True),
        _opt("cut-side", _choice(BoardSide),
             "cut side; valid choices are front, back or auto (default)", default=BoardSide.AUTO),
        _opt("bridges", _LENGTH, "add bridges with the given width to the outline cut",
             default=Quantity(0.0, Dimension.LENGTH)),
        _opt("bridgesnum", _uint, "specify how many bridges should be created", default=2),
        _opt("zbridges", _LENGTH, "bridges height (Z-coordinates while engraving bridges, default to zsafe)"),
        _opt("outline-output", str, "output file for outline", default="outline.ngc"),
    ]
    optimise_default = parse_quantity("0.0001in", Dimension.LENGTH)
    optimization = [
        _opt("optimise", _LENGTH,
             "Reduce output file size by up to 40% while accepting a little loss of precision.  "
             "Set to 0 to disable.",
             default=optimise_default, implicit=optimise_default),
        _flag("eulerian-paths", True, "Don't mill the same path twice if milling loops overlap."),
        _flag("vectorial", True, "enable or disable the vectorial rendering engine"),
        _flag("tsp-2opt", True, "use TSP 2OPT to find a faster toolpath (but slows down gcode generation)"),
        _opt("path-finding-limit", _uint,
             "Use path finding for up to this many steps in the search", default=1),
        _opt("g0-vertical-speed", _VELOCITY, "speed of vertical G0 movements, for use in path-finding",
             default=parse_quantity("50in/min", Dimension.VELOCITY)),
        _opt("g0-horizontal-speed", _VELOCITY, "speed of horizontal G0 movements, for use in path-finding",
             default=parse_quantity("100in/min", Dimension.VELOCITY)),
        _opt("backtrack", _VELOCITY,
             "allow retracing a milled path if it's faster than retract-move-lower.",
             default=Quantity(inf, Dimension.VELOCITY)),
    ]
    autolevelling = [
        _flag("al-front", False, "enable the z autoleveller for the front layer"),
        _flag("al-back", False, "enable the z autoleveller for the back layer"),
        _opt("software", _choice(Software),
             "choose the destination software (useful only with the autoleveller). "
             "Supported programs are linuxcnc, mach3, mach4 and custom"),
        _opt("al-x", _LENGTH, "max x distance between probes"),
        _opt("al-y", _LENGTH, "max y distance between probes"),
        _opt("al-probefeed", _VELOCITY, "speed during the probing"),
        _opt("al-probe-on", str, "execute this commands to enable the probe tool (default is M0)",
             default="(MSG, Attach the probe tool)@M0 ( Temporary machine stop. )"),
        _opt("al-probe-off", str, "execute this commands to disable the probe tool (default is M0)",
             default="(MSG, Detach the probe tool)@M0 ( Temporary machine stop. )"),
        _opt("al-probecode", str, "custom probe code (default is G31)", default="G31"),
        _opt("al-probevar", _uint,
             "number of the variable where the result of the probing is saved (default is 2002)",
             default=2002),
        _opt("al-setzzero", str, "gcode for setting the actual position as zero (default is G92 Z0)",
             default="G92 Z0"),
    ]
    alignment = [
        _opt("x-offset", _LENGTH, "offset the origin in the x-axis by this length",
             default=Quantity(0.0, Dimension.LENGTH)),
        _opt("y-offset", _LENGTH, "offset the origin in the y-axis by this length",
             default=Quantity(0.0, Dimension.LENGTH)),
        _flag("zero-start", False, "set the starting point of the project at (0,0)"),
        _flag("mirror-absolute", True,
              "[DEPRECATED, must always be true] mirror back side along absolute zero instead of board center"),
        _opt("mirror-axis", _LENGTH,
             "For two-sided boards, the PCB needs to be flipped along the axis x=VALUE",
             default=Quantity(0.0, Dimension.LENGTH)),
        _opt("mirror-yaxis", _bool,
             "For two-sided boards, the PCB needs to be flipped along the y axis instead", default=False),
    ]
    cnc = [
        _opt("zsafe", _LENGTH, "safety height (Z-coordinate during rapid moves)"),
        _opt("spinup-time", _TIME, "time required to the spindle to reach the correct speed",
             default=parse_quantity("1 ms", Dimension.TIME)),
        _opt("spindown-time", _TIME, "time required to the spindle to return to 0 rpm"),
        _opt("zchange", _LENGTH, "tool changing height"),
        _flag("zchange-absolute", False, "use zchange as a machine coordinates height (G53)"),
        _opt("tile-x", int, "number of tiling columns. Default value is 1", default=1),
        _opt("tile-y", int, "number of tiling rows. Default value is 1", default=1),
    ]
    generic = [
        _flag("ignore-warnings", False, "Ignore warnings"),
        _opt("svg", str, "[DEPRECATED] use --vectorial, SVGs will be generated automatically; "
                         "this option has no effect"),
        _flag("metric", False, "use metric units for parameters. does not affect gcode output"),
        _flag("metricoutput", False, "use metric units for output"),
        _opt("g64", float, "[DEPRECATED, use tolerance instead] maximum deviation from toolpath, "
                           "overrides internal calculation"),
        _opt("tolerance", float, "maximum toolpath tolerance"),
        _flag("nog64", False, "do not set an explicit g64"),
        _opt("output-dir", str, "output directory", default=""),
        _opt("basename", str, "prefix for default output file names"),
        _opt("preamble-text", str, "preamble text file, inserted at the very beginning as a comment."),
        _opt("preamble", str, "gcode preamble file, inserted at the very beginning."),
        _opt("postamble", str, "gcode postamble file, inserted before M9 and M2."),
        _flag("no-export", False, "skip the exporting process"),
    ]
    return [
        ("command line only options", cli),
        ("Drilling options, for making holes in the PCB", drilling),
        ("Milling options, for milling traces into the PCB", milling),
        ("Outline options, for cutting the PCB out of the FR4", outline),
        ("Optimization options, for faster PCB creation, smaller output files, "
         "and different algorithms.", optimization),
        ("Autolevelling options, for generating gcode to automatically probe the board "
         "and adjust milling depth to the actual board height", autolevelling),
        ("Alignment options, useful for aligning the milling on opposite sides of the PCB",
         alignment),
        ("CNC options, common to all the milling, drilling, and cutting", cnc),
        ("Generic options (CLI and config files)", generic),
    ]


_NUMBER_START = re.compile(r"-[\d.]")


def _looks_like_option(token: str) -> bool:
    return token.startswith("-") and len(token) > 1 and not _NUMBER_START.match(token)


def _flatten(nested: Iterable[Iterable[Any]]) -> list[Any]:
    return [item for group in nested for item in group]


class Options(Mapping[str, Any]):
    """The parsed option values, read like a read-only dictionary."""

    def __init__(self) -> None:
        self._sections = _build_sections()
        self._specs = {spec.name: spec for _, group in self._sections for spec in group}
        self._shorts = {spec.short: spec for spec in self._specs.values() if spec.short}
        self._values: dict[str, Any] = {}
        self._defaulted: set[str] = set()

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def is_defaulted(self, name: str) -> bool:
        """True if the option holds its default value rather than a given one."""
        return name in self._defaulted

    def maybe_raise(self, message: str, code: ErrorCode) -> None:
        """Raise OptionsError, unless ignore-warnings is set, then only log it."""
        if self._values.get("ignore-warnings", False):
            logger.warning("Ignoring error code %d: %s", int(code), message)
        else:
            raise OptionsError(message, code)

    def parse(self, argv: Sequence[str] | None = None) -> None:
        """Parse command line arguments (without the program name) and config files."""
        if argv is None:
            argv = sys.argv[1:]
        self._values.clear()
        self._defaulted.clear()
        try:
            self._store(self._parse_command_line(argv))
        except ValueError as error:
            raise OptionsError(
                f"Error: You've supplied an invalid parameter.\nDetails: {error}",
                ErrorCode.UNKNOWNPARAMETER,
            ) from error

        if not self._values["noconfigfile"]:
            self.parse_files(_flatten(self._values["config"]), self.is_defaulted("config"))

        if "basename" in self._values:
            prefix = self._values["basename"] + "_"
            for name in ("front", "back", "drill", "outline", "milldrill"):
                self._values[f"{name}-output"] = f"{prefix}{name}.ngc"

        if "tolerance" in self._values:
            if "g64" in self._values:
                self.maybe_raise(
                    "You can't specify both tolerance and g64!", ErrorCode.BOTHTOLERANCEG64
                )
        else:
            if "g64" in self._values:
                tolerance = self._values["g64"]
            else:
                tolerance = 0.0004 * (25.4 if self._values["metric"] else 1)
            self._store({"tolerance": [f"{tolerance:f}"]})
        self._fix_values()

    def parse_files(self, config_files: Sequence[str], defaulted: bool) -> None:
        """Read config files; a later file in the list overrides an earlier one.

        Missing files are an error only when they were asked for explicitly.
        """
        for file in reversed(list(config_files)):
            try:
                try:
                    text = Path(file).read_text(encoding="utf-8")
                except OSError:
                    if not defaulted:
                        self.maybe_raise(
                            f'Missing configuration file "{file}"', ErrorCode.INVALIDPARAMETER
                        )
                    text = ""
                self._store(self._parse_config_text(text))
            except (OptionsError, ValueError) as error:
                self.maybe_raise(
                    f'Error parsing configuration file "{file}": {error}',
                    ErrorCode.INVALIDPARAMETER,
                )

    def help(self) -> str:
        """Describe every option, grouped by section."""
        lines = [PROGRAM_NAME, ""]
        for title, specs in self._sections:
            lines.append(f"{title}:")
            lines.extend(f"  {spec.usage():<44} {spec.help}" for spec in specs)
            lines.append("")
        return "\n".join(lines)

    def _parse_command_line(self, argv: Sequence[str]) -> dict[str, list[str | None]]:
        occurrences: dict[str, list[str | None]] = {}
        queue = deque(token for token in argv if token)
        while queue:
            token = queue.popleft()
            if token.startswith("--") and len(token) > 2:
                name, has_value, value = token[2:].partition("=")
                spec = self._specs.get(name)
                if spec is None:
                    raise ValueError(f"unrecognised option '--{name}'")
            elif _looks_like_option(token):
                spec = self._shorts.get(token[1])
                if spec is None:
                    raise ValueError(f"unrecognised option '{token}'")
                value = token[2:]
                has_value = bool(value)
            else:
                raise ValueError(
                    f"too many positional options have been specified on the command line: {token!r}"
                )
            values = occurrences.setdefault(spec.name, [])
            if spec.is_switch:
                if has_value:
                    raise ValueError(f"option '--{spec.name}' does not take any arguments")
                values.append(None)
                continue
            if has_value:
                values.append(value)
            elif spec.implicit is not _MISSING:
                values.append(None)
            elif queue and not _looks_like_option(queue[0]):
                values.append(queue.popleft())
            else:
                raise ValueError(f"the required argument for option '--{spec.name}' is missing")
            if spec.multitoken:
                while queue and not _looks_like_option(queue[0]):
                    values.append(queue.popleft())
        return occurrences

    def _parse_config_text(self, text: str) -> dict[str, list[str | None]]:
        occurrences: dict[str, list[str | None]] = {}
        prefix = ""
        for number, raw in enumerate(text.splitlines(), 1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            if line.startswith("[") and line.endswith("]"):
                prefix = line[1:-1].strip() + "."
                continue
            name, has_value, value = line.partition("=")
            if not has_value:
                raise ValueError(f"invalid config file syntax at line {number}: {raw!r}")
            name = prefix + name.strip()
            spec = self._specs.get(name)
            if spec is None or spec.cli_only:
                raise ValueError(f"unrecognised option '{name}'")
            occurrences.setdefault(spec.name, []).append(value.strip())
        return occurrences

    def _store(self, occurrences: Mapping[str, Sequence[str | None]]) -> None:
        for name, raws in occurrences.items():
            if name in self._values and name not in self._defaulted:
                continue
            self._values[name] = self._specs[name].build(raws)
            self._defaulted.discard(name)
        for spec in self._specs.values():
            if spec.name not in self._values and spec.default is not _MISSING:
                self._values[spec.name] = copy.deepcopy(spec.default)
                self._defaulted.add(spec.name)

    def _fix_values(self) -> None:
        values = self._values
        if self.is_defaulted("min-milldrill-hole-diameter") and values["milldrill"]:
            values["min-milldrill-hole-diameter"] = Quantity(0.0, Dimension.LENGTH)
        if "offset" in values and self.is_defaulted("mill-diameters"):
            values["mill-diameters"] = [[values["offset"] * 2.0]]
            values["offset"] = Quantity(0.0, Dimension.LENGTH)
        if values["bridgesnum"] > 0 and values["bridges"].as_inch(1) <= 0:
            values["bridgesnum"] = 0