[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cmmopt"
version = "0.1.0"
description = "Symbol tables, syntax trees, three-address IR, machine-independent optimizations and MIPS output for a small C-like language"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "symbol table",
    "syntax tree",
    "three-address code",
    "optimization",
    "peephole",
    "copy propagation",
    "liveness",
    "dead code",
    "MIPS",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cmmopt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
