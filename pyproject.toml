[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chinium"
version = "0.1.0"
description = "Atom-centred integration grids, Gaussian basis functions on grids and Kohn-Sham exchange-correlation matrices"
requires-python = ">=3.10"
keywords = ["quantum chemistry", "density functional theory", "Becke grid", "Kohn-Sham", "Gaussian basis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Chemistry",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
    "numpy",
]

[tool.hatch.build.targets.wheel]
packages = ["chinium"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
