[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ownmesh"
version = "0.1.3"
description = "Peer-to-peer mesh building blocks: Nostr signaling, topology selection, verification codes and update policy."
requires-python = ">=3.10"
keywords = ["nostr", "signaling", "mesh", "peer-to-peer", "topology", "schnorr"]
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
    "Framework :: AsyncIO",
    "Topic :: System :: Networking",
]
dependencies = [
    "websockets>=13",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "pytest-asyncio>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["ownmesh"]

[tool.hatch.build.targets.sdist]
include = ["ownmesh", "tests", "pyproject.toml"]

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
