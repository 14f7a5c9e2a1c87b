[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cwcontracts"
version = "0.1.0"
description = "In-process claims, raffle, relay, validator-signed bridge, price-oracle and wrapped-token contracts with their wire formats"
requires-python = ">=3.10"
keywords = ["smart-contracts", "cw20", "oracle", "price-attestation", "bridge", "secp256k1"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
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
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cwcontracts"]

[tool.hatch.build.targets.sdist]
include = ["cwcontracts", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
