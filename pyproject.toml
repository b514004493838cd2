[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vortludo"
version = "0.1.0"
description = "A five-letter word guessing game served over HTTP"
requires-python = ">=3.10"
keywords = ["wordle", "word game", "puzzle", "flask", "web"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Puzzle Games",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
vortludo = "vortludo.server:main"

[tool.hatch.build.targets.wheel]
packages = ["vortludo"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
