[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "repofilter"
version = "0.1.0"
description = "Building blocks for rewriting Git history through git fast-export and git fast-import"
requires-python = ">=3.11"
dependencies = []
keywords = [
    "git",
    "history",
    "rewrite",
    "fast-export",
    "fast-import",
    "redaction",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["repofilter"]

[tool.hatch.build.targets.sdist]
include = ["repofilter", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
