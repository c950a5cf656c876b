[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "coreprov"
version = "0.1.0"
description = "Chart scanning, CRD version bookkeeping and RBAC generation for composition controllers"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kubernetes", "crd", "rbac", "helm", "discovery"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
coreprov-serve = "coreprov.server:main"

[tool.hatch.build.targets.wheel]
packages = ["coreprov"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
