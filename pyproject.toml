[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minikv"
version = "0.1.0"
description = "A small Redis-compatible key-value server speaking RESP, with lists, transactions, RDB loading and write propagation to replicas"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "resp", "key-value", "server", "rdb", "replication"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
minikv = "minikv.server:main"

[tool.hatch.build.targets.wheel]
packages = ["minikv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
