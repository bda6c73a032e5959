"""Validation of parsed options before any work is done.

Each check raises OptionsError through ``Options.maybe_raise``, so with
``ignore-warnings`` set the problems are only logged.
"""

from __future__ import annotations

import logging

from pcbmill.options import (
    Dimension,
    ErrorCode,
    MillFeedDirection,
    Options,
    Quantity,
)

logger = logging.getLogger(__name__)

_NO_MILLDRILL = Quantity(float("inf"), Dimension.LENGTH)


def _unit(options: Options) -> float:
    """Factor from bare numbers in the options to inches."""
    return 1 / 25.4 if options["metric"] else 1.0


def check_generic_parameters(options: Options) -> None:
    """Check the options that apply whatever is being produced."""
    unit = _unit(options)

    if options["spinup-time"].as_millisecond(1) < 0:
        options.maybe_raise("spinup-time can't be negative!", ErrorCode.NEGATIVESPINUP)

    if "spindown-time" in options and options["spindown-time"].as_millisecond(1) < 0:
        options.maybe_raise("spindown-time can't be negative!", ErrorCode.NEGATIVESPINDOWN)

    if "g64" in options:
        logger.warning("g64 is deprecated, use tolerance.")

    if not options["mirror-absolute"]:
        options.maybe_raise(
            "mirror-absolute is deprecated, it must be true.", ErrorCode.FALSEMIRRORABSOLUTE
        )

    tolerance_threshold = 0.2 if options["metric"] else 0.008
    if "tolerance" in options:
        tolerance = options["tolerance"]
        if tolerance > tolerance_threshold:
            logger.warning(
                "Warning: high tolerance value (allowed deviation from toolpath) given."
            )
        elif tolerance == 0:
            logger.warning(
                "Warning: Deviation from commanded toolpath set to 0 (tolerance=0). "
                "No smooth milling is most likely!"
            )
        elif tolerance < 0:
            options.maybe_raise("tolerance can't be negative!", ErrorCode.NEGATIVETOLERANCE)

    if "svg" in options:
        logger.warning(
            "--svg is deprecated and has no effect anymore, use --vectorial to generate SVGs."
        )

    if "drill" in options and not (
        "front" in options or "back" in options or "outline" in options
    ):
        logger.warning(
            "Warning: Board dimensions unknown. Gcode for drilling will be probably misaligned."
        )

    if options["tile-x"] < 1:
        options.maybe_raise("tile-x can't be negative!", ErrorCode.NEGATIVETILEX)
    if options["tile-y"] < 1:
        options.maybe_raise("tile-y can't be negative!", ErrorCode.NEGATIVETILEY)

    if "zsafe" not in options:
        options.maybe_raise("Error: Safety height not specified.", ErrorCode.NOZSAFE)

    if "zchange" not in options:
        options.maybe_raise("Error: Tool changing height not specified.", ErrorCode.NOZCHANGE)

    if options["al-front"] or options["al-back"]:
        if "software" not in options:
            options.maybe_raise(
                "Error: unspecified or unsupported software, please specify a supported "
                "software (linuxcnc, mach3, mach4 or custom).",
                ErrorCode.NOSOFTWARE,
            )

        if "al-x" not in options:
            options.maybe_raise(
                "Error: autoleveller probe width x not specified.", ErrorCode.NOALX
            )
        elif options["al-x"].as_inch(unit) <= 0:
            options.maybe_raise("Error: al-x < 0!", ErrorCode.NEGATIVEALX)

        if "al-y" not in options:
            options.maybe_raise(
                "Error: autoleveller probe width y not specified.", ErrorCode.NOALY
            )
        elif options["al-y"].as_inch(unit) <= 0:
            options.maybe_raise("Error: al-y < 0!", ErrorCode.NEGATIVEALY)

        if "al-probefeed" not in options:
            options.maybe_raise(
                "Error: autoleveller probe feed rate not specified.", ErrorCode.NOALPROBEFEED
            )
        elif options["al-probefeed"].as_inch_per_minute(unit) <= 0:
            options.maybe_raise("Error: al-probefeed < 0!", ErrorCode.NEGATIVEPROBEFEED)

    if options["mill-feed-direction"] is not MillFeedDirection.ANY and options["tsp-2opt"]:
        options.maybe_raise(
            "Error: Can't use tsp-2opt together with mill-feed-direction",
            ErrorCode.INVALIDPARAMETER,
        )


def check_milling_parameters(options: Options) -> None:
    """Check the isolation milling options when a front or back layer is given."""
    if "front" not in options and "back" not in options:
        return
    unit = _unit(options)

    if "zwork" not in options:
        options.maybe_raise("Error: --zwork not specified.", ErrorCode.NOZWORK)
    elif options["zwork"].amount > 0:
        logger.warning("Warning: Engraving depth (--zwork) is greater than zero!")

    if not options["vectorial"]:
        options.maybe_raise("Error: --vectorial is mandatory", ErrorCode.INVALIDPARAMETER)

    if "mill-diameters" not in options:
        options.maybe_raise("Error: no --mill-diameters specified.", ErrorCode.NOOFFSET)

    if "mill-feed" not in options:
        options.maybe_raise(
            "Error: Milling feed [i/m or mm/m] not specified.", ErrorCode.NOMILLFEED
        )

    if "mill-speed" not in options:
        options.maybe_raise("Error: Milling speed [rpm] not specified.", ErrorCode.NOMILLSPEED)

    if options["zsafe"].as_inch(unit) <= options["zwork"].as_inch(unit):
        options.maybe_raise(
            "Error: The safety height --zsafe is lower than the milling height --zwork. "
            "Are you sure this is correct?",
            ErrorCode.ZSAFELOWERZWORK,
        )

    if options["mill-feed"].amount <= 0:
        options.maybe_raise(
            "Error: Negative or equal to 0 milling feed (--mill-feed).",
            ErrorCode.NEGATIVEMILLFEED,
        )

    if "mill-vertfeed" in options and options["mill-vertfeed"].as_inch_per_minute(unit) <= 0:
        options.maybe_raise(
            "Error: Negative or equal to 0 vertical milling feed (--mill-vertfeed).",
            ErrorCode.NEGATIVEMILLVERTFEED,
        )

    if "mill-infeed" in options and options["mill-infeed"].as_inch(unit) <= 0.0:
        options.maybe_raise(
            "Error: The milling infeed --mill-infeed. seems too low.", ErrorCode.LOWMILLINFEED
        )

    if options["mill-speed"].amount < 0:
        options.maybe_raise("Error: --mill-speed < 0.", ErrorCode.NEGATIVEMILLSPEED)


def check_drilling_parameters(options: Options) -> None:
    """Check the drilling options when a drill file is given."""
    if "drill" not in options:
        return
    unit = _unit(options)

    if "zdrill" not in options:
        options.maybe_raise("Error: Drilling depth (--zdrill) not specified.\n", ErrorCode.NOZDRILL)

    if options["zsafe"].as_inch(unit) <= options["zdrill"].as_inch(unit):
        options.maybe_raise(
            "Error: The safety height --zsafe is lower than the drilling height --zdrill!\n",
            ErrorCode.ZSAFELOWERZDRILL,
        )

    if "zchange" not in options:
        options.maybe_raise(
            "Error: Drill bit changing height (--zchange) not specified.", ErrorCode.NOZCHANGE
        )
    elif options["zchange"].as_inch(unit) <= options["zdrill"].as_inch(unit):
        options.maybe_raise(
            "Error: The safety height --zsafe is lower than the tool change height --zchange!",
            ErrorCode.ZSAFELOWERZCHANGE,
        )

    if "drill-feed" not in options:
        options.maybe_raise(
            "Error:: Drilling feed (--drill-feed) not specified.", ErrorCode.NODRILLFEED
        )
    elif options["drill-feed"].as_inch_per_minute(unit) <= 0:
        options.maybe_raise(
            "Error: The drilling feed --drill-feed is <= 0.", ErrorCode.NEGATIVEDRILLFEED
        )

    if "drill-speed" not in options:
        options.maybe_raise(
            "Error: Drilling spindle RPM (--drill-speed) not specified.", ErrorCode.NODRILLSPEED
        )
    elif options["drill-speed"].as_rpm(1) < 0:
        options.maybe_raise("Error: --drill-speed < 0.", ErrorCode.NEGATIVEDRILLSPEED)

    if "drill-front" in options:
        logger.warning("drill-front is deprecated, use drill-side.")
        if not options.is_defaulted("drill-side"):
            options.maybe_raise(
                "You can't specify both drill-front and drill-side!",
                ErrorCode.BOTHDRILLFRONTSIDE,
            )


def check_cutting_parameters(options: Options) -> None:
    """Check the outline cutting options when an outline or mill-drilling is used."""
    milldrilling = "drill" in options and options["min-milldrill-hole-diameter"] < _NO_MILLDRILL
    if "outline" not in options and not milldrilling:
        return
    unit = _unit(options)

    if "zcut" not in options:
        options.maybe_raise(
            "Error: Board cutting depth (--zcut) not specified.", ErrorCode.NOZCUT
        )
    elif options["zcut"].as_inch(unit) > 0:
        options.maybe_raise(
            "Error: Cutting depth (--zcut) is greater than zero!", ErrorCode.NEGATIVEZWORK
        )

    if "cutter-diameter" not in options:
        options.maybe_raise("Error: Cutter diameter not specified.", ErrorCode.NOCUTTERDIAMETER)

    if "cut-feed" not in options:
        options.maybe_raise(
            "Error: Board cutting feed (--cut-feed) not specified.", ErrorCode.NOCUTFEED
        )

    if "cut-speed" not in options:
        options.maybe_raise(
            "Error: Board cutting spindle RPM (--cut-speed) not specified.", ErrorCode.NOCUTSPEED
        )

    if "cut-infeed" not in options:
        options.maybe_raise(
            "Error: Board cutting infeed (--cut-infeed) not specified.", ErrorCode.NOCUTINFEED
        )

    if options["zsafe"].as_inch(unit) <= options["zcut"].as_inch(unit):
        options.maybe_raise(
            "Error: The safety height --zsafe is lower than the cutting height --zcut!",
            ErrorCode.ZSAFELOWERZCUT,
        )

    if options["cut-feed"].as_inch_per_minute(unit) <= 0:
        options.maybe_raise(
            "Error: The cutting feed --cut-feed is <= 0.", ErrorCode.NEGATIVECUTFEED
        )

    if "cut-vertfeed" in options and options["cut-vertfeed"].as_inch_per_minute(unit) <= 0:
        options.maybe_raise(
            "Error: The cutting vertical feed --cut-vertfeed is <= 0.",
            ErrorCode.NEGATIVECUTVERTFEED,
        )

    if options["cut-speed"].as_rpm(1) < 0:
        options.maybe_raise(
            "Error: The cutting spindle speed --cut-speed is lower than 0.",
            ErrorCode.NEGATIVESPINDLESPEED,
        )

    if options["cut-infeed"].as_inch(unit) < 0.001:
        options.maybe_raise(
            "Error: The cutting infeed --cut-infeed. seems too low.", ErrorCode.LOWCUTINFEED
        )

    if options["bridges"].as_inch(unit) < 0:
        options.maybe_raise("Error: negative bridge value.", ErrorCode.NEGATIVEBRIDGE)

    if "cut-front" in options:
        logger.warning("cut-front is deprecated, use cut-side.")
        if not options.is_defaulted("cut-side"):
            options.maybe_raise(
                "You can't specify both cut-front and cut-side!\n", ErrorCode.BOTHCUTFRONTSIDE
            )


def check_parameters(options: Options) -> None:
    """Run every check; a value needed by a check but missing is an invalid parameter."""
    try:
        check_generic_parameters(options)
        check_milling_parameters(options)
        check_cutting_parameters(options)
        check_drilling_parameters(options)
    except KeyError:
        options.maybe_raise("Error: Invalid parameter. :-(", ErrorCode.INVALIDPARAMETER)