[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "archecs"
version = "0.1.0"
description = "Archetype-based entity-component storage: entity ids, archetype columns, bundles, column batches and component borrows"
requires-python = ">=3.10"
dependencies = []
keywords = ["ecs", "entity-component-system", "archetype", "gamedev", "data-oriented"]
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
    "Topic :: Software Development :: Libraries",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["archecs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
