[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uflow"
version = "0.1.0"
description = "Wire format, CRC and acknowledgement bookkeeping for a UDP-based reliable transport protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["udp", "networking", "protocol", "crc", "congestion-control", "tfrc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["uflow"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
