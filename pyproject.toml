[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ssair"
version = "0.1.0"
description = "An SSA-form intermediate representation with an assembly printer, a bytecode writer and simple optimisation passes"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "ssa",
    "intermediate-representation",
    "bytecode",
    "constant-propagation",
    "dead-code-elimination",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ssair"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
