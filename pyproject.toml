[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "layerconf"
version = "0.1.0"
description = "Layered application configuration from defaults, files, environment variables and overrides"
requires-python = ">=3.11"
keywords = ["configuration", "settings", "environment", "toml", "yaml", "json", "ini"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["layerconf"]

[tool.pytest.ini_options]
addopts = "-ra"
