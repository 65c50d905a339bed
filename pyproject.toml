[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pctation"
version = "0.1.0"
description = "Hardware components of a PlayStation emulator: memory map, DMA, timers, joypad, CD-ROM drive and GPU primitive decoding"
requires-python = ">=3.10"
keywords = ["emulator", "playstation", "psx", "cdrom", "dma"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pctation"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
