[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iodine"
version = "0.1.0"
description = "Building blocks for tunnelling IP data through DNS: DNS-safe codecs, hostname packing and DNS packet encoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["dns", "tunnel", "base32", "base64", "base128", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["iodine"]

[tool.pytest.ini_options]
addopts = "-ra"
