[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nutsdb"
version = "0.1.0"
description = "Building blocks of an embeddable key/value store: B+ tree index, checksummed data file entries, lists, sets and sorted sets."
requires-python = ">=3.10"
dependencies = []
keywords = ["key-value", "database", "b+tree", "skiplist", "storage", "embedded"]
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
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nutsdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
