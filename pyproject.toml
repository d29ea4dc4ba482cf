[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aprsgate"
version = "0.1.0"
description = "Building blocks for an APRS iGate and digipeater: passcodes, bulletins, rate limits, message retries, diagnostics and serial/Bluetooth TNC helpers."
requires-python = ">=3.10"
dependencies = []
keywords = ["aprs", "igate", "kiss", "tnc", "ham-radio", "bluetooth", "rfcomm", "bulletins"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["aprsgate"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
