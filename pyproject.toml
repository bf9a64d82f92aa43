[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chaincontracts"
version = "0.1.0"
description = "In-memory models of on-chain trading contracts: price feeds, lockups, incentive programs and whitelisted perp and shifter contracts."
requires-python = ">=3.10"
dependencies = []
keywords = ["perpetuals", "price feed", "oracle", "lockup", "incentives", "whitelist", "smart contracts"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chaincontracts"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
