import io

from pcbmill.gcode import CutterSettings, GCodeWriter, MillSettings


def _mill(**kwargs):
    values = dict(zwork=-0.01, zsafe=0.1, feed=10.0, speed=10000, zchange=1.0)
    values.update(kwargs)
    return MillSettings(**values)


def _cutter(**kwargs):
    values = dict(zwork=-0.1, zsafe=0.1, feed=10.0, speed=10000, zchange=1.0, stepsize=0.1)
    values.update(kwargs)
    return CutterSettings(**values)


def _layer(writer, mill, toolpaths, bridges=None):
    out = io.StringIO()
    writer.write_layer(out, mill, toolpaths, bridges)
    return out.getvalue()


def test_defaults_derived_from_feed_and_depth():
    mill = _mill()
    assert mill.vertfeed == mill.feed / 2
    assert mill.stepsize == -mill.zwork
    assert mill.steps == 1
    cutter = _cutter(bridges_height=None)
    assert cutter.bridges_height == cutter.zsafe


def test_empty_toolpaths_write_nothing():
    assert _layer(GCodeWriter(), _mill(), []) == ""


def test_program_structure_inches():
    writer = GCodeWriter()
    writer.add_header("made by tests")
    text = _layer(writer, _mill(), [(0.01, [[(1.0, 2.0), (3.0, 4.0)]])])
    assert text.startswith("( made by tests )\n( Software-independent Gcode )\n")
    assert "G94 ( Inches per minute feed rate. )\nG20 ( Units == INCHES. )\n" in text
    assert "G90 ( Absolute coordinates. )\n" in text
    assert text.endswith("M9 ( Coolant off. )\nM2 ( Program end. )\n\n")
    assert "M6      (Tool change.)\n" in text
    assert "T0\n" in text
    assert "(MSG, Change tool bit to mill diameter " in text
    assert "G01 X1.00000 Y2.00000\n" in text
    assert "G01 X3.00000 Y4.00000\n" in text
    assert "M5 ( Spindle off. )\n" in text


def test_metric_output_scales():
    text = _layer(GCodeWriter(metric_output=True), _mill(feed=1.0), [(1.0, [[(0.0, 0.0)]])])
    assert "G21 ( Units == Millimeters. )" in text
    assert "F25.40000 ( Feedrate. )" in text
    assert "25.40000mm)" in text


def test_nom6_and_zchange_absolute():
    text = _layer(
        GCodeWriter(nom6=True, zchange_absolute=True), _mill(), [(0.01, [[(0.0, 0.0)]])]
    )
    assert "M6" not in text
    assert "G53 G00 Z" in text


def test_no_explicit_tolerance():
    text = _layer(GCodeWriter(), _mill(explicit_tolerance=False), [(0.01, [[(0.0, 0.0)]])])
    assert "G64" not in text


def test_preamble_and_postamble_are_included():
    writer = GCodeWriter()
    writer.set_preamble("( pre )\n")
    writer.set_postamble("( post )\n")
    text = _layer(writer, _mill(), [(0.01, [[(0.0, 0.0)]])])
    assert "\n( pre )\n" in text
    assert "( post )\nM5 ( Spindle off. )" in text
    assert text.index("( pre )") < text.index("( post )")


def test_offsets_are_subtracted():
    text = _layer(GCodeWriter(xoffset=1.0, yoffset=2.0), _mill(), [(0.01, [[(3.0, 5.0)]])])
    assert "G01 X2.00000 Y3.00000\n" in text


def test_isolation_passes_and_lift_on_open_path():
    out = io.StringIO()
    mill = _mill(zwork=-0.03, stepsize=0.01)
    GCodeWriter().isolation_milling(out, mill, [(0.0, 0.0), (1.0, 0.0)], 0.0, 0.0)
    text = out.getvalue()
    assert text.count("( Mill infeed pass") == mill.steps
    assert f"( Mill infeed pass {mill.steps}/{mill.steps} )" in text
    assert text.count("( retract )") == mill.steps - 1


def test_isolation_closed_path_does_not_lift():
    out = io.StringIO()
    mill = _mill(zwork=-0.03, stepsize=0.01)
    path = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)]
    GCodeWriter().isolation_milling(out, mill, path, 0.0, 0.0)
    assert "( retract )" not in out.getvalue()


def test_isolation_pre_and_post_gcode():
    out = io.StringIO()
    mill = _mill(pre_milling_gcode="M7", post_milling_gcode="M9")
    GCodeWriter().isolation_milling(out, mill, [(0.0, 0.0)], 0.0, 0.0)
    text = out.getvalue()
    assert "( begin pre-milling-gcode )\nM7\n( end pre-milling-gcode )\n" in text
    assert text.endswith("( begin post-milling-gcode )\nM9\n( end post-milling-gcode )\n")


def test_cutter_rises_over_bridge():
    out = io.StringIO()
    cutter = _cutter(bridges_height=0.05)
    path = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 0.0)]
    GCodeWriter().cutter_milling(out, cutter, path, [1], 0.0, 0.0)
    lines = out.getvalue().splitlines()
    rise = lines.index("G00 Z0.05000")
    assert lines[rise + 1] == "G01 X2.00000 Y0.00000"
    assert lines[rise + 2].startswith("G01 Z-0.10000 F")
    assert lines[-1] == "G01 X3.00000 Y0.00000"
    assert sum(line.startswith("G01 X") for line in lines) == len(path) - 1


def test_cutter_without_bridges_never_rises():
    out = io.StringIO()
    GCodeWriter().cutter_milling(out, _cutter(), [(0.0, 0.0), (1.0, 0.0)], [], 0.0, 0.0)
    text = out.getvalue()
    assert "( plunge. )" in text
    assert "G00" not in text


def test_write_layer_cutter_uses_bridges_and_message():
    cutter = _cutter(bridges_height=0.05)
    path = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
    text = _layer(GCodeWriter(), cutter, [(0.125, [path])], [[0]])
    assert "(MSG, Change tool bit to cutter diameter 0.12500in)" in text
    assert "G00 Z0.05000\n" in text


def test_program_end_written_once_for_last_tool():
    text = _layer(
        GCodeWriter(), _mill(), [(0.01, [[(0.0, 0.0)]]), (0.02, [[(1.0, 1.0)]])]
    )
    assert "T0\n" in text and "T1\n" in text
    assert text.count("M5 ( Spindle off. )") == 1
    assert text.index("T1\n") < text.index("M5 ( Spindle off. )")