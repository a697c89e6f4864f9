[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nelm"
version = "0.1.0"
description = "Deployment planning for Kubernetes releases: operations, dependency graphs and failure cleanup plans"
requires-python = ">=3.10"
keywords = ["kubernetes", "deployment", "release", "plan", "dag"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]
dependencies = [
    "networkx",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["nelm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
