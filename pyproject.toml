[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "motorlink"
version = "0.1.0"
description = "Serial link, configuration, time sync and differential-drive odometry for a multi-motor controller board"
requires-python = ">=3.10"
keywords = [
    "serial",
    "motor-controller",
    "odometry",
    "differential-drive",
    "robotics",
    "embedded",
    "time-sync",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]
dependencies = [
    "pyserial>=3.5",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
motorlink = "motorlink.app:main"

[tool.hatch.build.targets.wheel]
packages = ["motorlink"]

[tool.hatch.build.targets.sdist]
include = [
    "motorlink",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
