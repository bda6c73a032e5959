[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pcbmill"
version = "0.1.0"
description = "Polygons for Gerber apertures and drawings, milling option checks and G-code output for circuit board milling"
requires-python = ">=3.10"
dependencies = [
    "shapely",
]
keywords = ["pcb", "gerber", "gcode", "cnc", "milling", "isolation routing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Manufacturing",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Electronic Design Automation (EDA)",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["pcbmill"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
