[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "suipanel"
version = "1.3.0"
description = "Core pieces of a proxy management panel: configuration, SQLite storage and migrations, traffic tracking, and web helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["proxy", "panel", "sing-box", "sqlite", "traffic", "migration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["suipanel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
