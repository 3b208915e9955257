[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dmgemu"
version = "0.1.0"
description = "A small Game Boy (DMG) emulator core: memory bus, SM83 CPU and a command to run a cartridge."
requires-python = ">=3.10"
dependencies = []
keywords = ["gameboy", "dmg", "emulator", "sm83", "cpu"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dmgemu = "dmgemu.main:main"

[tool.hatch.build.targets.wheel]
packages = ["dmgemu"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
