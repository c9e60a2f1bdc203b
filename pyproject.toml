[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "whatsfunc"
version = "1.2.0"
description = "Search-history tracking, TF-IDF command search, query understanding and performance metrics for a command finder"
requires-python = ">=3.10"
dependencies = []
keywords = ["command search", "tf-idf", "nlp", "metrics", "search history"]
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
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["whatsfunc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
