[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dispatchq"
version = "0.1.0"
description = "A small task queue with leases, retries and pluggable storage"
requires-python = ">=3.10"
dependencies = []
keywords = ["queue", "task-queue", "jobs", "worker", "lease", "retry"]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dispatchq"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
