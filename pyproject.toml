[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "krewkit"
version = "0.3.0"
description = "Plugin index, manifest validation and archive handling tooling for kubectl plugins"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kubectl", "kubernetes", "plugins", "index", "manifest", "validation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
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
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
validate-krew-manifest = "krewkit.validate_manifest:main"
generate-plugin-overview = "krewkit.overview:main"

[tool.hatch.build.targets.wheel]
packages = ["krewkit"]

[tool.hatch.build.targets.sdist]
include = ["krewkit", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
