[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "simplecomp"
version = "0.1.0"
description = "An educational simple computer: emulator, terminal console, assembler and big-character font generator"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "simple computer", "assembler", "terminal", "education"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
simplecomp = "simplecomp.app:main"
simplecomp-asm = "simplecomp.assembler:main"
simplecomp-font = "simplecomp.fontgen:main"

[tool.hatch.build.targets.wheel]
packages = ["simplecomp"]

[tool.pytest.ini_options]
addopts = "-ra"
