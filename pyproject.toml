[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slslog"
version = "0.1.0"
description = "Data models, retry helpers, shard-hash helpers and a batching producer for a hosted log service"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "log-service", "producer", "batching", "shard-hash", "retry"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["slslog"]

[tool.hatch.build.targets.sdist]
include = ["slslog", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
