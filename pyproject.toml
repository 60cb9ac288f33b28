[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lnproxy-client"
version = "0.1.0"
description = "Client for requesting and validating Lightning Network proxy invoices from an lnproxy relay"
requires-python = ">=3.10"
dependencies = []
keywords = ["lightning", "bitcoin", "bolt11", "invoice", "lnproxy", "privacy"]
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
    "Topic :: Office/Business :: Financial",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lnproxy_client"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
