[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "msgwire"
version = "0.1.0"
description = "MessagePack wire-level reading, extensions, numbers and MessagePack-to-JSON conversion"
requires-python = ">=3.10"
dependencies = []
keywords = ["messagepack", "msgpack", "serialization", "json", "binary"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["msgwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
