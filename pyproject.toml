[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kernsim"
version = "0.1.0"
description = "A small teaching-kernel toolkit: x86 paging and descriptors, ELF headers, locks, system call plumbing, a shell parser and user-space utilities"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kernel",
    "operating-system",
    "paging",
    "x86",
    "elf",
    "shell",
    "malloc",
    "simulation",
    "education",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kernsim-wc = "kernsim.wc:main"

[tool.hatch.build.targets.wheel]
packages = ["kernsim"]

[tool.hatch.build.targets.sdist]
include = ["kernsim", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
