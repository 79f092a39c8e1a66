[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sdcore-operator"
version = "0.1.0"
description = "Reconciliation logic that turns NFDeployment resources into SD-Core AMF, SMF and UPF workloads"
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "operator", "5g", "sd-core", "nfdeployment", "reconciler", "upf", "smf", "amf"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sdcore_operator"]

[tool.hatch.build.targets.sdist]
include = ["sdcore_operator", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
