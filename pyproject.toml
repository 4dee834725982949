[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "discdust"
version = "0.1.0"
description = "Dust particles, planets and disc forces for two-dimensional polar-grid models of protoplanetary discs"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "protoplanetary disc",
    "dust",
    "planets",
    "polar grid",
    "particle-mesh interpolation",
    "astrophysics",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["discdust"]

[tool.hatch.build.targets.sdist]
include = [
    "discdust",
    "tests",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
